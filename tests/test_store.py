"""Tests for the HDF5 scenario store."""

import h5py
import numpy as np
import pytest

from udeops.discovery import CandidateBasis, SymbolicModel
from udeops.io import ScenarioRecord, ScenarioStore
from udeops.io.store import STATUS_INFEASIBLE, STATUS_OK


def _model() -> SymbolicModel:
    basis = CandidateBasis.default(degree=2, include_sine=False)
    coef = np.zeros((2, len(basis)))
    coef[0, basis.names.index("u1*u2")] = -0.9
    coef[1, basis.names.index("u1*u2")] = 0.8
    return SymbolicModel(basis=basis, coefficients=coef, errors=[1e-3, 2e-3])


def _record(index: int, with_model: bool = True) -> ScenarioRecord:
    rng = np.random.default_rng(index)
    model = _model() if with_model else None
    return ScenarioRecord(
        run_index=index,
        noise_magnitude=1e-3,
        states=rng.standard_normal((31, 2)),
        times=np.linspace(0.0, 3.0, 31),
        initial_parameters=rng.standard_normal(87),
        trained_parameters=rng.standard_normal(87),
        losses=np.array([3.0, 2.0, 1.0]),
        phase1_iterations=2,
        phase2_iterations=1,
        initial_model=model,
        final_model=model,
        message="done",
    )


def test_append_and_reload(tmp_path) -> None:
    path = tmp_path / "runs.h5"
    with ScenarioStore(path, "family") as store:
        for i in (1, 2, 3):
            assert store.append(_record(i)) == f"family/{i}"
    with ScenarioStore(path, "family") as store:
        assert len(store) == 3
        assert store.keys() == ["family/1", "family/2", "family/3"]
        assert 2 in store and "family/3" in store and 4 not in store
        loaded = store.load(2)
    original = _record(2)
    np.testing.assert_array_equal(loaded.states, original.states)
    np.testing.assert_array_equal(loaded.times, original.times)
    np.testing.assert_array_equal(loaded.trained_parameters, original.trained_parameters)
    np.testing.assert_array_equal(loaded.losses, original.losses)
    assert loaded.phase1_iterations == 2 and loaded.phase2_iterations == 1
    assert loaded.noise_magnitude == 1e-3
    assert loaded.message == "done"
    assert loaded.status == STATUS_OK
    np.testing.assert_array_equal(loaded.final_model.coefficients, original.final_model.coefficients)
    assert loaded.final_model.basis.names == original.final_model.basis.names
    assert loaded.initial_model is not None


def test_layout_on_disk(tmp_path) -> None:
    path = tmp_path / "runs.h5"
    with ScenarioStore(path, "Scenario_1_broadnoise") as store:
        store.append(_record(1))
    with h5py.File(path, "r") as f:
        assert f.attrs["package"] == "udeops"
        grp = f["Scenario_1_broadnoise/1"]
        for name in ("X", "t", "initial_parameters", "trained_parameters", "losses"):
            assert name in grp
        assert grp.attrs["discovery_status"] == STATUS_OK
        equations = list(grp["result/equations"].asstr()[()])
        assert len(equations) == 2 and all("u1*u2" in eq for eq in equations)
        assert "initial" in grp["result"]


def test_infeasible_record(tmp_path) -> None:
    path = tmp_path / "runs.h5"
    with ScenarioStore(path, "family") as store:
        record = _record(7, with_model=False)
        record.infeasible_outputs = [1]
        store.append(record)
        store.append(_record(8))
        loaded = store.load("family/7")
        feasible = store.load(8)
        assert list(store.file["family/7"].attrs["infeasible_outputs"]) == [1]
    assert loaded.status == STATUS_INFEASIBLE
    assert loaded.final_model is None and loaded.initial_model is None
    assert loaded.infeasible_outputs == [1]
    assert feasible.infeasible_outputs == []


def test_existing_key_is_refused(tmp_path) -> None:
    with ScenarioStore(tmp_path / "runs.h5", "family") as store:
        store.append(_record(1))
        with pytest.raises(KeyError):
            store.append(_record(1))
        assert len(store) == 1


def test_failed_write_leaves_no_partial_record(tmp_path) -> None:
    bad = _record(5)
    bad.states = np.array(["not", "numbers"], dtype=object)
    with ScenarioStore(tmp_path / "runs.h5", "family") as store:
        store.append(_record(1))
        with pytest.raises((ValueError, TypeError)):
            store.append(bad)
        assert 5 not in store
        assert "_staging/5" not in store.file
        assert len(store) == 1


def test_closed_store_raises(tmp_path) -> None:
    store = ScenarioStore(tmp_path / "runs.h5", "family")
    with pytest.raises(RuntimeError):
        store.append(_record(1))
    with pytest.raises(ValueError):
        ScenarioStore(tmp_path / "runs.h5", "a/b")
