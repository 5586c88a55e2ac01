"""
Exception types raised by the call session bridge and its collaborators.

Device and session errors surface to the caller of ``start_call``; decode and
analysis errors are contained by the component that raises them.
"""


class ReceptionistError(Exception):
    """Base class for all application errors."""


class DeviceAcquisitionError(ReceptionistError):
    """The microphone or speaker could not be opened."""


class SessionOpenError(ReceptionistError):
    """The Live session could not be established."""


class SessionProtocolError(ReceptionistError):
    """The Live session failed or closed abnormally mid-call."""


class DecodeError(ReceptionistError):
    """An inbound audio chunk could not be decoded."""


class AnalysisError(ReceptionistError):
    """The post-call analysis request failed."""


class CallAlreadyActiveError(ReceptionistError):
    """A call was started while another one is still active."""
