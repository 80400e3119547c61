class TinyAttnError(Exception):
    """Base class for every error raised by the model core."""


class UnknownCharacter(TinyAttnError, KeyError):
    def __init__(self, char: str, vocabulary: str = ""):
        self.char = char
        self.vocabulary = vocabulary
        super().__init__(char)

    def __str__(self):
        return f"character {self.char!r} is not in the vocabulary {self.vocabulary!r}"


class DimensionMismatch(TinyAttnError, ValueError):
    pass


class NumericInstability(TinyAttnError, ArithmeticError):
    pass


class CorruptState(TinyAttnError, ValueError):
    pass
