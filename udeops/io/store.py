"""
Append-only HDF5 store of scenario runs.

Layout of one file:

    /                      attrs: package, version
    /<family>/<index>      datasets X, t, initial_parameters, trained_parameters, losses
                           attrs run_index, noise_magnitude, phase1_iterations,
                                 phase2_iterations, discovery_status, message,
                                 infeasible_outputs (only when discovery failed)
    /<family>/<index>/result          final symbolic model (absent when infeasible)
    /<family>/<index>/result/initial  pass-1 symbolic model

A record is written into a staging group and moved to its key only once
complete, so an interrupted write never leaves a partial record under a key.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import h5py
import numpy as np
from loguru import logger

from udeops.discovery.symbolic import SymbolicModel

STATUS_OK = "ok"
STATUS_INFEASIBLE = "infeasible"

_STAGING = "_staging"
_STR = h5py.string_dtype()


@dataclass
class ScenarioRecord:
    """Everything persisted for one run."""

    run_index: int
    noise_magnitude: float
    states: np.ndarray
    times: np.ndarray
    initial_parameters: np.ndarray
    trained_parameters: np.ndarray
    losses: np.ndarray
    phase1_iterations: int
    phase2_iterations: int
    initial_model: Optional[SymbolicModel] = None
    final_model: Optional[SymbolicModel] = None
    message: str = ""
    infeasible_outputs: List[int] = field(default_factory=list)

    @property
    def status(self) -> str:
        return STATUS_OK if self.final_model is not None else STATUS_INFEASIBLE


def _write_model(grp: h5py.Group, model: SymbolicModel) -> None:
    grp.create_dataset("coefficients", data=model.coefficients)
    grp.create_dataset("error", data=model.errors)
    grp.create_dataset("basis", data=model.basis.names, dtype=_STR)
    grp.create_dataset("symbols", data=model.basis.symbol_names, dtype=_STR)
    grp.create_dataset("equations", data=[str(eq) for eq in model.equations()], dtype=_STR)


def _read_model(grp: h5py.Group) -> SymbolicModel:
    return SymbolicModel.from_dict({
        "coefficients": grp["coefficients"][()],
        "errors": grp["error"][()],
        "basis": list(grp["basis"].asstr()[()]),
        "symbols": list(grp["symbols"].asstr()[()]),
    })


def _write_record(grp: h5py.Group, record: ScenarioRecord) -> None:
    grp.create_dataset("X", data=np.asarray(record.states, dtype=float))
    grp.create_dataset("t", data=np.asarray(record.times, dtype=float))
    grp.create_dataset("initial_parameters", data=np.asarray(record.initial_parameters, dtype=float))
    grp.create_dataset("trained_parameters", data=np.asarray(record.trained_parameters, dtype=float))
    grp.create_dataset("losses", data=np.asarray(record.losses, dtype=float))
    grp.attrs["run_index"] = int(record.run_index)
    grp.attrs["noise_magnitude"] = float(record.noise_magnitude)
    grp.attrs["phase1_iterations"] = int(record.phase1_iterations)
    grp.attrs["phase2_iterations"] = int(record.phase2_iterations)
    grp.attrs["discovery_status"] = record.status
    grp.attrs["message"] = record.message
    if record.infeasible_outputs:
        grp.attrs["infeasible_outputs"] = np.asarray(record.infeasible_outputs, dtype=np.int64)
    if record.final_model is not None:
        result = grp.create_group("result")
        _write_model(result, record.final_model)
        if record.initial_model is not None:
            _write_model(result.create_group("initial"), record.initial_model)


class ScenarioStore:
    """
    HDF5 file holding the runs of one scenario family, opened in append mode.

    Usage:
        with ScenarioStore("loop.h5", "Scenario_1_broadnoise") as store:
            store.append(record)
    """

    def __init__(self, path: Union[str, Path], family: str = "Scenario_1_broadnoise") -> None:
        if not family or "/" in family:
            raise ValueError(f"family must be a non-empty name without '/', got {family!r}")
        self.path = Path(path)
        self.family = family
        self._file: Optional[h5py.File] = None

    def open(self) -> "ScenarioStore":
        from udeops import __version__

        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = h5py.File(self.path, "a")
            self._file.attrs.setdefault("package", "udeops")
            self._file.attrs.setdefault("version", __version__)
            if _STAGING in self._file:
                # leftovers of an interrupted append
                del self._file[_STAGING]
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "ScenarioStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def file(self) -> h5py.File:
        if self._file is None:
            raise RuntimeError("Store not open: use it as a context manager or call open().")
        return self._file

    def key(self, run_index: int) -> str:
        return f"{self.family}/{int(run_index)}"

    def append(self, record: ScenarioRecord) -> str:
        """
        Write one record under <family>/<run_index> and flush.

        Raises:
            KeyError: a record already exists under that key.
        """
        f = self.file
        key = self.key(record.run_index)
        if key in f:
            raise KeyError(f"{key} already stored in {self.path}")
        staging = f"{_STAGING}/{int(record.run_index)}"
        try:
            _write_record(f.create_group(staging), record)
            f.require_group(self.family)
            f.move(staging, key)
        except Exception:
            if staging in f:
                del f[staging]
            logger.error("Could not store {} in {}", key, self.path)
            raise
        f.flush()
        return key

    def keys(self) -> List[str]:
        """Stored keys ordered by run index."""
        if self.family not in self.file:
            return []
        return [self.key(k) for k in sorted(self.file[self.family].keys(), key=int)]

    def load(self, key: Union[str, int]) -> ScenarioRecord:
        """Read a record back by key or run index."""
        if not isinstance(key, str):
            key = self.key(key)
        grp = self.file[key]
        result = grp.get("result")
        final_model = initial_model = None
        if result is not None:
            final_model = _read_model(result)
            if "initial" in result:
                initial_model = _read_model(result["initial"])
        return ScenarioRecord(
            run_index=int(grp.attrs["run_index"]),
            noise_magnitude=float(grp.attrs["noise_magnitude"]),
            states=grp["X"][()],
            times=grp["t"][()],
            initial_parameters=grp["initial_parameters"][()],
            trained_parameters=grp["trained_parameters"][()],
            losses=grp["losses"][()],
            phase1_iterations=int(grp.attrs["phase1_iterations"]),
            phase2_iterations=int(grp.attrs["phase2_iterations"]),
            initial_model=initial_model,
            final_model=final_model,
            message=str(grp.attrs.get("message", "")),
            infeasible_outputs=[int(i) for i in grp.attrs.get("infeasible_outputs", [])],
        )

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: Union[str, int]) -> bool:
        if not isinstance(key, str):
            key = self.key(key)
        return key in self.file
