"""
Custom exceptions for Rhythmo
"""

class RhythmoError(Exception):
    """Base exception for Rhythmo."""
    pass

class ConfigurationError(RhythmoError):
    """Raised when there's a configuration error."""
    pass

class PrefixError(ConfigurationError):
    """Raised when a requested command prefix is not acceptable."""
    pass

class PersistenceError(ConfigurationError):
    """Raised when the configuration file could not be written."""
    pass

class ResolveError(RhythmoError):
    """Raised when track resolution fails."""
    pass

class PlayerError(RhythmoError):
    """Raised when there's a player error."""
    pass

class QueueFullError(PlayerError):
    """Raised when a server queue reached its capacity."""
    pass

class VoiceConnectError(PlayerError):
    """Raised when joining a voice channel fails."""
    pass
