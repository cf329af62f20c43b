from abc import ABC, abstractmethod


class LoggingPort(ABC):
    """What core code may log. Messages use %-style args and a bracketed tag
    prefix such as ``[supervisor:poll]``."""

    @abstractmethod
    def debug(self, msg: str, *args):
        pass

    @abstractmethod
    def info(self, msg: str, *args):
        pass

    @abstractmethod
    def warning(self, msg: str, *args):
        pass

    @abstractmethod
    def error(self, msg: str, *args):
        pass

    @abstractmethod
    def exception(self, msg: str, *args):
        """Log at ERROR with the active exception's traceback."""
        pass
