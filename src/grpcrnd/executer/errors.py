class GrpcRndError(Exception):
    """Base class for failures that stop a call before a result is rendered."""


class NameFormatError(GrpcRndError):
    pass


class ResolutionError(GrpcRndError):
    pass


class BuildError(GrpcRndError):
    """The synthesized value tree could not be bound to the input message."""

    def __init__(self, stage, message):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class InvocationError(GrpcRndError):
    pass
