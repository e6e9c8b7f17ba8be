# errors.py

class WwmpError(Exception):
    pass

class DecodeError(WwmpError):
    """The byte stream is not a well-formed MIDI container. Playback must not be attempted."""

class InjectionError(WwmpError):
    """A key press/release could not be delivered to the host."""

class ConfigError(WwmpError):
    pass
