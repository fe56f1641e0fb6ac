"""Start-up failures that end the program before the game starts."""


class FlappyError(Exception):
    exit_code = 1


class TerminalUnavailableError(FlappyError):
    """The terminal can't be switched to raw mode or has no size."""

    exit_code = 1


class AudioUnavailableError(FlappyError):
    """No audio device could be opened."""

    exit_code = 2
