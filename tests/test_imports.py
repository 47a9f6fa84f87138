"""Verify that main modules are importable."""


def test_import_udeops() -> None:
    import udeops
    assert udeops.__version__ == "0.1.0"


def test_import_core() -> None:
    from udeops.core import LossTrace, RecoveryConfig, Trajectory, NoFeasibleModelError
    assert LossTrace is not None
    assert RecoveryConfig is not None
    assert Trajectory is not None
    assert issubclass(NoFeasibleModelError, Exception)


def test_import_physics() -> None:
    from udeops.physics import HybridODEModel, LotkaVolterra, ODEModel, integrate
    assert issubclass(LotkaVolterra, ODEModel)
    assert HybridODEModel is not None
    assert callable(integrate)


def test_import_ml() -> None:
    from udeops.ml import RBFNetwork, train, predict, trajectory_loss
    assert RBFNetwork is not None
    assert train is not None
    assert predict is not None
    assert trajectory_loss is not None


def test_import_discovery() -> None:
    from udeops.discovery import sr3, stlsq, CandidateBasis, EquationDiscovery, SymbolicModel
    assert sr3 is not None
    assert stlsq is not None
    assert CandidateBasis is not None
    assert EquationDiscovery is not None
    assert SymbolicModel is not None


def test_import_io() -> None:
    from udeops.io import ScenarioStore, ScenarioRecord, save_config, load_config
    assert ScenarioStore is not None
    assert ScenarioRecord is not None
    assert save_config is not None
    assert load_config is not None


def test_import_pipeline() -> None:
    from udeops import RecoveryPipeline, recover_dynamics
    assert RecoveryPipeline is not None
    assert callable(recover_dynamics)


def test_subpackage_docs_list_their_modules() -> None:
    import udeops.ml
    import udeops.physics
    assert udeops.ml.__doc__.splitlines()[3] == "Layout:"
    assert "integrators" in udeops.physics.__doc__
