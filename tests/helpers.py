import os
import tempfile

from career_identity.store import IdentityStore


def make_store(test_case) -> IdentityStore:
    tmp_dir = tempfile.TemporaryDirectory()
    store = IdentityStore(os.path.join(tmp_dir.name, "identity.db"))
    test_case.addCleanup(tmp_dir.cleanup)
    test_case.addCleanup(store.close)
    return store


def unit(index: int, dimension: int = 4) -> list[float]:
    vector = [0.0] * dimension
    vector[index] = 1.0
    return vector
