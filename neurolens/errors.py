# neurolens/errors.py

class ConfigurationError(ValueError):
    """Ill-shaped kernel/patch/image or an unknown mode name. Fatal to the call."""


class ExternalServiceUnavailable(RuntimeError):
    """The text-generation collaborator has no credentials or gave an unusable reply."""
