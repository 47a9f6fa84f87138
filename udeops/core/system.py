"""
Scenario orchestrator: ground truth -> noisy data -> UDE training -> equation discovery -> store.

RecoveryPipeline prepares every run in the parent process (noise and initial
parameters drawn in run order), executes the per-run work sequentially or in a
process pool, and persists each record from the parent only.
"""

import multiprocessing
import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np
import torch
from loguru import logger

from udeops.core.config import RecoveryConfig
from udeops.core.errors import NoFeasibleModelError
from udeops.core.seeding import make_random_sources, seed_everything
from udeops.core.trajectory import Trajectory
from udeops.discovery.engine import EquationDiscovery
from udeops.io.store import STATUS_INFEASIBLE, STATUS_OK, ScenarioRecord, ScenarioStore
from udeops.ml.approximator import RBFNetwork
from udeops.ml.training import train
from udeops.physics.library import LotkaVolterra
from udeops.physics.neural_ode import HybridODEModel
from udeops.physics.ode import generate_ground_truth
from udeops.simulation.noise import NoiseInjector

STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class RunTask:
    """Inputs of one run, fixed before any run executes."""

    index: int
    noise_magnitude: float
    data: Trajectory
    initial_parameters: np.ndarray


@dataclass
class RunOutcome:
    """What happened to one run: ok, infeasible, failed or skipped (already stored)."""

    index: int
    status: str
    key: Optional[str] = None
    error: Optional[str] = None
    equations: List[str] = field(default_factory=list)


def recover_dynamics(task: RunTask, config: RecoveryConfig) -> ScenarioRecord:
    """
    Train the hybrid model on the task's noisy data, then discover the missing term.

    Pure with respect to its inputs; safe to run in a worker process.
    An infeasible discovery yields a record without models.
    """
    logger.info("Started run {}.", task.index)
    network = RBFNetwork(config.training.layer_sizes)
    model = HybridODEModel(network, config.ground_truth.known_parameters)
    problem = model.problem(task.data)
    result = train(
        problem,
        task.data.states,
        torch.from_numpy(np.array(task.initial_parameters, dtype=np.float64)),
        config.training,
    )

    initial_model = final_model = None
    infeasible_outputs = []
    try:
        discovery = EquationDiscovery(config.discovery).discover(
            result.predicted_states, result.predicted_correction
        )
    except NoFeasibleModelError as exc:
        logger.warning("Run {}: {}", task.index, exc)
        infeasible_outputs = list(exc.equations)
    else:
        initial_model, final_model = discovery.initial, discovery.final
        logger.info("Found equations : {}", final_model.equation_strings())
        logger.info("Parameter estimation : {}", final_model.parameters())

    return ScenarioRecord(
        run_index=task.index,
        noise_magnitude=task.noise_magnitude,
        states=np.array(task.data.states),
        times=np.array(task.data.times),
        initial_parameters=result.initial_parameters,
        trained_parameters=result.parameters,
        losses=result.trace.to_numpy(),
        phase1_iterations=result.phase1_iterations,
        phase2_iterations=result.phase2_iterations,
        initial_model=initial_model,
        final_model=final_model,
        message=result.message,
        infeasible_outputs=infeasible_outputs,
    )


def _init_worker() -> None:
    # one interop/intraop thread per process, the pool provides the parallelism
    torch.set_num_threads(1)


class RecoveryPipeline:
    """
    Repeated (noise, recovery) cycles over one ground-truth trajectory.

    Usage:
        pipeline = RecoveryPipeline(RecoveryConfig(n_runs=10)).initialize()
        with ScenarioStore(path, family) as store:
            outcomes = pipeline.run(store)
    """

    def __init__(self, config: Optional[RecoveryConfig] = None) -> None:
        self.config = config or RecoveryConfig()
        self.network = RBFNetwork(self.config.training.layer_sizes)
        self.ground_truth: Optional[Trajectory] = None
        self.injector: Optional[NoiseInjector] = None
        self._rng: Optional[np.random.Generator] = None
        self._generator: Optional[torch.Generator] = None
        self._initialized = False

    def initialize(self) -> "RecoveryPipeline":
        """
        Seed, integrate the reference system and set up the noise reference.

        Raises:
            IntegrationFailure: the ground truth could not be computed.
        """
        cfg = self.config.ground_truth
        seed_everything(self.config.seed)
        system = LotkaVolterra.from_parameters(cfg.known_parameters)
        self.ground_truth = generate_ground_truth(
            system,
            cfg.initial_state,
            cfg.t_span,
            cfg.dt,
            atol=cfg.atol,
            rtol=cfg.rtol,
            method=cfg.method,
        )
        noise = self.config.noise
        self.injector = NoiseInjector(self.ground_truth, noise.scale, noise.thresholds, noise.levels)
        self._rng, self._generator = make_random_sources(self.config.seed)
        self._initialized = True
        logger.info(
            "Ground truth: {} samples on [{}, {}]", self.ground_truth.n_steps, *self.ground_truth.t_span
        )
        return self

    def _sources(self, index: int) -> Tuple[np.random.Generator, torch.Generator]:
        if self.config.reseed_per_run:
            return make_random_sources(self.config.seed, index)
        return self._rng, self._generator

    def prepare_runs(self, n_runs: Optional[int] = None, start: int = 1) -> List[RunTask]:
        """
        Draw noisy data and initial parameters for runs start..start+n_runs-1, in order.

        With a shared random stream, calling this twice continues the stream.
        """
        if not self._initialized:
            raise RuntimeError("Pipeline not initialized: call initialize() before prepare_runs().")
        n_runs = self.config.n_runs if n_runs is None else n_runs
        if n_runs < 0 or start < 1:
            raise ValueError(f"need n_runs >= 0 and start >= 1, got {n_runs} and {start}")
        tasks = []
        for i in range(start, start + n_runs):
            rng, generator = self._sources(i)
            data = self.injector.inject(i, rng)
            theta0 = self.network.initial_parameters(generator).numpy()
            tasks.append(RunTask(i, self.injector.magnitude(i), data, theta0))
        return tasks

    def _execute(self, tasks: List[RunTask]) -> Iterator[Tuple[RunTask, Optional[ScenarioRecord], Optional[BaseException]]]:
        """Yield (task, record, error) in run order."""
        n_workers = min(max(1, self.config.n_workers), os.cpu_count() or 1, max(1, len(tasks)))
        if n_workers == 1:
            for task in tasks:
                try:
                    yield task, recover_dynamics(task, self.config), None
                except Exception as exc:
                    logger.exception("Run {} failed", task.index)
                    yield task, None, exc
            return

        ctx = multiprocessing.get_context("spawn")
        with ProcessPoolExecutor(max_workers=n_workers, mp_context=ctx, initializer=_init_worker) as pool:
            futures = [pool.submit(recover_dynamics, task, self.config) for task in tasks]
            for task, future in zip(tasks, futures):
                try:
                    yield task, future.result(), None
                except Exception as exc:
                    logger.exception("Run {} failed", task.index)
                    yield task, None, exc

    def run(self, store: Optional[ScenarioStore] = None) -> List[RunOutcome]:
        """
        Execute all runs and persist them.

        Runs already present in the store are skipped (their random draws are
        still consumed, so the remaining runs see the same data as in a full
        batch). A failing run is logged and reported; the batch continues.
        """
        if not self._initialized:
            self.initialize()
        own_store = store is None
        if own_store:
            store = ScenarioStore(self.config.output, self.config.scenario)
        store.open()
        try:
            tasks = self.prepare_runs()
            outcomes = {t.index: RunOutcome(t.index, STATUS_SKIPPED, key=store.key(t.index))
                        for t in tasks if t.index in store}
            pending = [t for t in tasks if t.index not in outcomes]
            if outcomes:
                logger.info("Skipping {} run(s) already stored", len(outcomes))
            for task, record, error in self._execute(pending):
                outcomes[task.index] = self._persist(store, task, record, error)
        finally:
            if own_store:
                store.close()
        return [outcomes[t.index] for t in tasks]

    def _persist(
        self,
        store: ScenarioStore,
        task: RunTask,
        record: Optional[ScenarioRecord],
        error: Optional[BaseException],
    ) -> RunOutcome:
        if record is None:
            return RunOutcome(task.index, STATUS_FAILED, error=repr(error))
        try:
            key = store.append(record)
        except Exception as exc:
            logger.exception("Run {} could not be stored", task.index)
            return RunOutcome(task.index, STATUS_FAILED, error=repr(exc))
        logger.info("Finished run {}.", task.index)
        if record.final_model is None:
            return RunOutcome(task.index, STATUS_INFEASIBLE, key=key)
        return RunOutcome(task.index, STATUS_OK, key=key, equations=record.final_model.equation_strings())
