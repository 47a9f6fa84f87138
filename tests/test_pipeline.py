"""Tests for the scenario orchestrator and the command line (tiny budgets)."""

import numpy as np
import pytest
from loguru import logger

import udeops.core.system as system
from udeops import RecoveryConfig, RecoveryPipeline, ScenarioStore
from udeops.__main__ import main
from udeops.core.config import DiscoveryConfig, TrainingConfig
from udeops.core.errors import NoFeasibleModelError
from udeops.io import ScenarioRecord, load_recovery_config


def _config(tmp_path, **kwargs) -> RecoveryConfig:
    defaults = dict(
        n_runs=3,
        seed=7,
        scenario="test",
        output=str(tmp_path / "loop.h5"),
        training=TrainingConfig(adam_iterations=2, bfgs_iterations=2),
        discovery=DiscoveryConfig(threshold_exponents=(-2.0, 1.0, 0.5), max_iter=200),
    )
    defaults.update(kwargs)
    return RecoveryConfig(**defaults)


def _fake_recover(task, config) -> ScenarioRecord:
    return ScenarioRecord(
        run_index=task.index,
        noise_magnitude=task.noise_magnitude,
        states=np.array(task.data.states),
        times=np.array(task.data.times),
        initial_parameters=task.initial_parameters,
        trained_parameters=task.initial_parameters,
        losses=np.array([1.0]),
        phase1_iterations=1,
        phase2_iterations=0,
    )


def test_prepare_runs_requires_initialize(tmp_path) -> None:
    with pytest.raises(RuntimeError):
        RecoveryPipeline(_config(tmp_path)).prepare_runs()


def test_prepare_runs_is_deterministic(tmp_path) -> None:
    a = RecoveryPipeline(_config(tmp_path)).initialize().prepare_runs()
    b = RecoveryPipeline(_config(tmp_path)).initialize().prepare_runs()
    assert [t.index for t in a] == [1, 2, 3]
    for ta, tb in zip(a, b):
        np.testing.assert_array_equal(ta.data.states, tb.data.states)
        np.testing.assert_array_equal(ta.initial_parameters, tb.initial_parameters)
    assert not np.array_equal(a[0].data.states, a[1].data.states)
    assert a[0].noise_magnitude == 1e-3


def test_reseed_per_run_makes_runs_independent(tmp_path) -> None:
    config = _config(tmp_path, reseed_per_run=True)
    full = RecoveryPipeline(config).initialize().prepare_runs()
    alone = RecoveryPipeline(config).initialize().prepare_runs(n_runs=1, start=2)
    np.testing.assert_array_equal(full[1].data.states, alone[0].data.states)
    np.testing.assert_array_equal(full[1].initial_parameters, alone[0].initial_parameters)


def test_failing_run_does_not_abort_batch(tmp_path, monkeypatch) -> None:
    def flaky(task, config):
        if task.index == 2:
            raise RuntimeError("boom")
        return _fake_recover(task, config)

    monkeypatch.setattr(system, "recover_dynamics", flaky)
    config = _config(tmp_path)
    with ScenarioStore(config.output, config.scenario) as store:
        outcomes = RecoveryPipeline(config).run(store)
        assert [o.status for o in outcomes] == ["infeasible", "failed", "infeasible"]
        assert "boom" in outcomes[1].error
        assert store.keys() == ["test/1", "test/3"]


def test_stored_runs_are_skipped_on_resume(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(system, "recover_dynamics", _fake_recover)
    config = _config(tmp_path)
    first = RecoveryPipeline(config).run()
    assert all(o.key is not None for o in first)
    second = RecoveryPipeline(config).run()
    assert [o.status for o in second] == ["skipped"] * 3
    with ScenarioStore(config.output, config.scenario) as store:
        assert len(store) == 3


def test_end_to_end_run(tmp_path) -> None:
    config = _config(tmp_path, n_runs=2)
    pipeline = RecoveryPipeline(config).initialize()
    assert pipeline.ground_truth.states.shape == (31, 2)
    with ScenarioStore(config.output, config.scenario) as store:
        outcomes = pipeline.run(store)
        assert [o.index for o in outcomes] == [1, 2]
        assert all(o.status in ("ok", "infeasible") for o in outcomes)
        assert len(store) == 2
        record = store.load(1)
    assert record.states.shape == (31, 2)
    assert record.phase1_iterations == 2
    assert len(record.losses) == record.phase1_iterations + record.phase2_iterations
    assert record.trained_parameters.shape == (87,)


def test_recover_dynamics_is_reproducible(tmp_path) -> None:
    config = _config(tmp_path, n_runs=1)
    task = RecoveryPipeline(config).initialize().prepare_runs()[0]
    a = system.recover_dynamics(task, config)
    b = system.recover_dynamics(task, config)
    np.testing.assert_array_equal(a.trained_parameters, b.trained_parameters)
    np.testing.assert_array_equal(a.losses, b.losses)
    assert a.status == b.status


def test_infeasible_outputs_are_recorded(tmp_path, monkeypatch) -> None:
    class NoModel:
        def __init__(self, config):
            pass

        def discover(self, X, Y):
            raise NoFeasibleModelError([1])

    monkeypatch.setattr(system, "EquationDiscovery", NoModel)
    config = _config(tmp_path, n_runs=1)
    task = RecoveryPipeline(config).initialize().prepare_runs()[0]
    record = system.recover_dynamics(task, config)
    assert record.status == "infeasible"
    assert record.infeasible_outputs == [1]
    with ScenarioStore(config.output, config.scenario) as store:
        store.append(record)
        assert store.load(1).infeasible_outputs == [1]


def test_cli_dump_config(tmp_path) -> None:
    path = tmp_path / "resolved.json"
    try:
        assert main(["--dump-config", str(path), "--runs", "7", "--seed", "3", "--reseed-per-run"]) == 0
    finally:
        # main() installs a sink bound to the captured stderr of this test
        logger.remove()
    config = load_recovery_config(path)
    assert config.n_runs == 7
    assert config.seed == 3
    assert config.reseed_per_run is True
    assert config.training == TrainingConfig()
