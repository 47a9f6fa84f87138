"""Exception hierarchy shared by the recovery pipeline."""


class UDEOpsError(Exception):
    """Base class for all errors raised by udeops."""


class IntegrationFailure(UDEOpsError):
    """The ODE solver could not produce a finite trajectory."""


class DiscoveryError(UDEOpsError):
    """The equation discovery step could not produce a model."""


class NoFeasibleModelError(DiscoveryError):
    """
    No threshold in the sweep produced a candidate with at least one nonzero
    coefficient for one or more output dimensions.
    """

    def __init__(self, equations: list) -> None:
        self.equations = list(equations)
        super().__init__(
            "No feasible sparse model for output dimension(s) "
            + ", ".join(str(i) for i in self.equations)
        )
