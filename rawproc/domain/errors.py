class RawProcError(Exception):
    """
    Base class for every error raised by the development pipeline.
    """


class UnsupportedInputError(RawProcError):
    """
    The decoder produced data the pipeline cannot develop
    (floating point sensor samples, non-Bayer colour filter arrays).
    """


class DimensionError(RawProcError, ValueError):
    """
    Buffer sizes or margins do not agree with the declared image geometry.
    """


class CalibrationError(RawProcError, ValueError):
    """
    Calibration metadata that would lead to a division by zero or a singular transform.
    """
