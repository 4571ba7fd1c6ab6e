"""
runlength.core.errors
=====================

Exceptions raised by runlength.

Configuration problems are detected once, when an object is constructed or
deserialized, and are surfaced immediately; ``observe`` itself never raises
for a validly constructed object.

Examples
--------
>>> from runlength.core.errors import InvalidConfiguration
>>> issubclass(InvalidConfiguration, ValueError)
True
"""


class InvalidConfiguration(ValueError):
    """Raised for invalid construction or deserialization parameters.

    Covers zero window sizes, non-finite thresholds, mismatched transform
    parameters, and serialized records whose ``"type"`` tag does not match
    the class being restored.
    """
