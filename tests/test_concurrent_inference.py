import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from mlpnets import MLPClassifier, NotTrained
from mlpnets.core import initializers
from mlpnets.core.activations import SIGMOID
from mlpnets.core.network import Network
from mlpnets.training.clones import CloneCache
from mlpnets.training.metrics import count_correct, count_correct_parallel


@pytest.fixture(scope="module")
def trained_session():
    rng = np.random.default_rng(9)
    rows = [rng.uniform(-1.0, 1.0, size=4) for _ in range(60)]
    labels = [int(np.argmax(row[:3])) for row in rows]
    session = MLPClassifier(
        4,
        (6,),
        learning_rate=0.2,
        max_epochs=20,
        max_delta_threshold=1e-6,
        hidden_activation="tanh",
        weight_init=initializers.gaussian(seed=2, scale=0.5),
    )
    session.fit_arrays(rows, labels)
    session.finish_fitting()
    return session, rows, labels


def test_parallel_predictions_match_sequential(trained_session):
    session, rows, _ = trained_session
    sequential = [session.predict(row) for row in rows]
    work = rows * 10
    with ThreadPoolExecutor(max_workers=8) as pool:
        parallel = list(pool.map(session.predict, work))
    assert parallel == sequential * 10


def test_parallel_count_matches_sequential(trained_session):
    session, rows, labels = trained_session
    seen = []
    expected = count_correct(session, rows, labels)
    got = count_correct_parallel(
        session, list(zip(rows, labels)), max_workers=4, progress=seen.append
    )
    assert got == expected
    assert sorted(seen) == list(range(1, len(rows) + 1))


def test_clone_cache_is_per_thread():
    source = Network(2, [3], 2, SIGMOID, initializers.gaussian(seed=0))
    cache = CloneCache(lambda: source)
    mine = cache.get()
    assert cache.get() is mine
    assert mine is not source
    assert cache.cached()

    others = []
    thread = threading.Thread(target=lambda: others.append(cache.get()))
    thread.start()
    thread.join()
    assert others[0] is not mine

    cache.drop()
    assert not cache.cached()
    replacement = cache.get()
    assert replacement is not mine

    cache.invalidate()
    assert not cache.cached()
    assert cache.get() is not replacement


def test_clone_cache_can_be_disabled():
    source = Network(2, [], 2, SIGMOID)
    cache = CloneCache(lambda: source, enabled=False)
    assert cache.get() is not cache.get()


def test_clone_source_requires_training():
    session = MLPClassifier(2, (2,), learning_rate=0.1)
    with pytest.raises(NotTrained):
        session.predict_scores([0.0, 0.0])
