from typing import Iterable, List, Sequence

from .errors import UnknownCharacter

DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyz .,!?"
PLACEHOLDER = "?"


class Characters:
    """Ordered single-character vocabulary.

    strict=True makes encode() raise on characters outside the vocabulary;
    strict=False maps them to -1, which the model embeds as a zero vector.
    decode() is always lenient and renders unknown indices as PLACEHOLDER.
    """

    def __init__(self, alphabet: Iterable[str] = DEFAULT_ALPHABET, strict: bool = True):
        characters = list(alphabet)
        for ch in characters:
            if not isinstance(ch, str) or len(ch) != 1:
                raise ValueError(f"vocabulary entries must be single characters, got {ch!r}")
        if len(set(characters)) != len(characters):
            raise ValueError("vocabulary characters must be unique")
        if not characters:
            raise ValueError("vocabulary must not be empty")
        self.characters = "".join(characters)
        self.num_characters = len(self.characters)
        self.strict = strict
        self._lookup = {ch: i for i, ch in enumerate(self.characters)}

    def __len__(self):
        return self.num_characters

    def __contains__(self, ch):
        return ch in self._lookup

    def index(self, ch: str) -> int:
        try:
            return self._lookup[ch]
        except KeyError:
            raise UnknownCharacter(ch, self.characters) from None

    def encode(self, text: str) -> List[int]:
        if self.strict:
            return [self.index(c) for c in text]
        return [self._lookup.get(c, -1) for c in text]

    def decode(self, indices: Sequence[int]) -> str:
        n = self.num_characters
        return "".join(self.characters[int(i)] if 0 <= int(i) < n else PLACEHOLDER for i in indices)
