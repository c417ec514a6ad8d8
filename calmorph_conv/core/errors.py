"""
Exception hierarchy for the conversion pipeline.

Configuration errors abort a run before any task is dispatched.
Task errors are attached to a single task result and never stop siblings.
"""


class ConversionError(Exception):
    """Base class for all pipeline errors"""


class ConfigurationError(ConversionError):
    """Invalid or inconsistent run configuration (fatal)"""


class UnsupportedPlateSize(ConfigurationError):
    pass


class MissingPlateData(ConfigurationError):
    pass


class UnrecognizedChannel(ConfigurationError):
    pass


class InvalidContrastMode(ConfigurationError):
    pass


class ChannelContrastCountMismatch(ConfigurationError):
    pass


class FilenamePatternMismatch(ConfigurationError):
    pass


class FieldCountAmbiguous(ConfigurationError):
    pass


class UnknownMicroscope(ConfigurationError):
    pass


class TaskError(ConversionError):
    """Error scoped to a single conversion task (non-fatal)"""


class MissingInputFrame(TaskError):
    pass


class ConversionEngineFailure(TaskError):
    pass
