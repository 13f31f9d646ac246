import numpy as np
import pytest

from mlpnets.core import initializers
from mlpnets.core.activations import IDENTITY, SIGMOID, TANH
from mlpnets.core.errors import InvalidTopology, ShapeMismatch
from mlpnets.core.layer import Layer
from mlpnets.core.network import Network
from mlpnets.training.losses import SOFTMAX_LOG_LOSS, SUM_SQUARED_RESIDUALS


def _make_network(dims=(3, 5, 4, 2), seed=123, activations=None):
    return Network(
        dims[0],
        list(dims[1:-1]),
        dims[-1],
        activations or [TANH] * (len(dims) - 2) + [SIGMOID],
        initializers.gaussian(seed=seed, scale=0.5),
    )


def _numeric_gradients(net, x, y, loss, eps=1e-6):
    grads = []
    for layer_idx in range(net.num_layers):
        weights = net.get_weights(layer_idx)
        grad = np.zeros_like(weights)
        for i, j in np.ndindex(weights.shape):
            plus = net.clone()
            plus.set_weight(layer_idx, i, j, weights[i, j] + eps)
            minus = net.clone()
            minus.set_weight(layer_idx, i, j, weights[i, j] - eps)
            grad[i, j] = (loss.loss(y, plus.forward(x)) - loss.loss(y, minus.forward(x))) / (2 * eps)
        grads.append(grad)
    return grads


def test_layer_forward_appends_bias():
    layer = Layer(2, 3, IDENTITY, initializers.from_values([1, 2, 3, 4, 5, 6]))
    assert layer.shape == (3, 3)
    assert np.array_equal(layer.get_weights()[:, -1], np.zeros(3))
    out = layer.forward(np.array([1.0, -1.0]))
    assert np.allclose(out, [-1.0, -1.0, -1.0, 1.0])
    assert layer.layer_input[-1] == 1.0
    assert np.allclose(layer.output, [-1.0, -1.0, -1.0])


def test_layer_rejects_bad_sizes_and_inputs():
    with pytest.raises(InvalidTopology):
        Layer(0, 2, IDENTITY)
    with pytest.raises(InvalidTopology):
        Layer(2, -1, IDENTITY)
    with pytest.raises(InvalidTopology):
        Layer(2, 1.5, IDENTITY)
    layer = Layer(2, 2, IDENTITY, initializers.constant(0.5))
    layer.forward([1.0, 2.0])
    before = layer.layer_input
    with pytest.raises(ShapeMismatch):
        layer.forward([1.0, 2.0, 3.0])
    assert np.array_equal(layer.layer_input, before)
    with pytest.raises(ShapeMismatch):
        layer.apply_delta(np.zeros((2, 2)))


def test_layer_delta_skips_frozen_weights():
    layer = Layer(2, 2, IDENTITY, initializers.constant(0.0))
    layer.set_frozen(0, 1, True)
    assert layer.is_frozen(0, 1)
    layer.forward([2.0, 3.0])
    delta, max_change = layer.compute_delta(np.array([1.0, -0.5]), learning_rate=0.1)
    assert delta[0, 1] == 0.0
    assert delta[0, 0] == pytest.approx(-0.2)
    assert delta[1, 2] == pytest.approx(0.05)
    assert max_change == pytest.approx(0.2)


def test_shape_invariant_across_layers():
    net = _make_network(dims=(3, 5, 4, 2))
    assert net.num_hidden_layers == 2
    assert net.layer_dims == [3, 5, 4, 2]
    previous = net.input_size
    for idx in range(net.num_layers):
        rows, cols = net.get_weights(idx).shape
        assert cols == previous + 1
        previous = rows
    assert previous == net.output_size
    assert net.describe().weight_shapes == [(5, 4), (4, 6), (2, 5)]
    assert net.parameter_count() == 5 * 4 + 4 * 6 + 2 * 5


@pytest.mark.parametrize(
    "dims", [(0, 3, 2), (2, 0, 2), (2, 3, 0), (-1, 2), (2, 2.5, 2), (1.5, 2), (2, "3", 1)]
)
def test_invalid_topology(dims):
    with pytest.raises(InvalidTopology):
        Network(dims[0], list(dims[1:-1]), dims[-1], SIGMOID)


def test_activation_selector_forms():
    by_callable = Network(2, [3], 2, lambda idx: TANH if idx == 0 else IDENTITY)
    assert by_callable.activation(0) is TANH
    assert by_callable.activation(1) is IDENTITY
    single = Network(2, [3, 3], 1, SIGMOID)
    assert all(single.activation(idx) is SIGMOID for idx in range(3))
    with pytest.raises(InvalidTopology):
        Network(2, [3], 2, [TANH])


def test_bias_input_stays_one():
    net = _make_network()
    for x in (np.full(3, 1e6), np.zeros(3), np.array([np.inf, 0.0, -1.0])):
        with np.errstate(all="ignore"):
            net.forward(x)
        for layer in net.layers:
            assert layer.layer_input[-1] == 1.0


def test_forward_output_excludes_bias():
    net = _make_network(dims=(3, 4, 2))
    out = net.forward(np.array([0.1, 0.2, 0.3]))
    assert out.shape == (2,)
    out[:] = 99.0
    assert not np.allclose(net.layers[-1].output, 99.0)


@pytest.mark.parametrize("loss", [SUM_SQUARED_RESIDUALS, SOFTMAX_LOG_LOSS])
def test_backward_matches_numeric_gradient(loss):
    net = _make_network(dims=(3, 4, 3, 2), seed=7)
    x = np.array([0.5, -1.2, 0.8])
    y = np.array([0.0, 1.0])
    expected_grads = _numeric_gradients(net, x, y, loss)

    before = [net.get_weights(idx) for idx in range(net.num_layers)]
    net.forward(x)
    max_change = net.backward(y, loss, learning_rate=1.0)
    changes = [net.get_weights(idx) - before[idx] for idx in range(net.num_layers)]

    for change, grad in zip(changes, expected_grads):
        assert np.allclose(change, -grad, atol=1e-6)
    assert max_change == pytest.approx(max(float(np.max(np.abs(c))) for c in changes))


def test_frozen_weights_never_move():
    net = _make_network(dims=(2, 3, 2), seed=1)
    net.set_weight(0, 1, 0, -0.0)
    net.set_frozen(0, 1, 0)
    net.set_frozen(1, 0, 3)
    frozen_before = (net.get_weights(0)[1, 0].tobytes(), net.get_weights(1)[0, 3].tobytes())
    rng = np.random.default_rng(0)
    for _ in range(50):
        net.forward(rng.standard_normal(2))
        net.backward(np.array([1.0, 0.0]), SUM_SQUARED_RESIDUALS, learning_rate=0.5)
    frozen_after = (net.get_weights(0)[1, 0].tobytes(), net.get_weights(1)[0, 3].tobytes())
    assert frozen_after == frozen_before
    assert net.is_frozen(0, 1, 0)
    assert not net.is_frozen(0, 0, 0)


def test_backward_shape_mismatch_does_not_mutate():
    net = _make_network(dims=(3, 4, 2))
    net.forward(np.ones(3))
    snapshot = net.state_dict()
    with pytest.raises(ShapeMismatch):
        net.backward(np.array([1.0, 0.0, 0.0]), SUM_SQUARED_RESIDUALS, 0.1)
    for key, weights in net.state_dict().items():
        assert np.array_equal(weights, snapshot[key])


def test_backward_requires_forward():
    net = _make_network(dims=(3, 2))
    with pytest.raises(RuntimeError):
        net.backward(np.array([1.0, 0.0]), SUM_SQUARED_RESIDUALS, 0.1)


def test_clone_is_independent():
    net = _make_network(dims=(3, 4, 2))
    net.set_frozen(0, 0, 0)
    x = np.array([0.3, -0.1, 0.7])
    reference = net.forward(x)

    copy = net.clone()
    assert copy.layer_dims == net.layer_dims
    assert copy.is_frozen(0, 0, 0)
    assert np.allclose(copy.layers[0].net_input, 0.0)
    assert np.array_equal(copy.forward(x), reference)

    copy.forward(np.zeros(3))
    copy.backward(np.array([0.0, 1.0]), SUM_SQUARED_RESIDUALS, 0.5)
    assert np.array_equal(net.forward(x), reference)
    for layer, cloned in zip(net.layers, copy.layers):
        assert layer.weights is not cloned.weights
        assert layer.frozen is not cloned.frozen


def test_state_dict_round_trip_and_validation():
    net = _make_network(dims=(3, 4, 2), seed=5)
    other = _make_network(dims=(3, 4, 2), seed=6)
    other.load_state_dict(net.state_dict())
    x = np.array([1.0, 2.0, 3.0])
    assert np.array_equal(other.forward(x), net.forward(x))
    with pytest.raises(KeyError):
        other.load_state_dict({"W0": net.get_weights(0)})
    with pytest.raises(ShapeMismatch):
        other.load_state_dict({"W0": np.zeros((4, 4)), "W1": np.zeros((3, 5))})


def test_initializers():
    first = initializers.gaussian(seed=3)
    second = initializers.gaussian(seed=3)
    assert [first() for _ in range(5)] == [second() for _ in range(5)]
    draw = initializers.uniform(-0.1, 0.1, seed=0)
    assert all(-0.1 <= draw() < 0.1 for _ in range(20))
    assert initializers.constant(2.5)() == 2.5
    replay = initializers.from_values([1.0])
    assert replay() == 1.0
    with pytest.raises(ValueError):
        replay()
    with pytest.raises(KeyError):
        initializers.build("xavier")
    with pytest.raises(ValueError):
        initializers.uniform(1.0, 1.0)
