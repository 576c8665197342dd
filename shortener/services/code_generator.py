"""
Short Code Generator

Produces fixed-length random codes over the base62 alphabet [0-9A-Za-z].

Design Decisions:
- Random codes instead of encoded row ids: no coordination between
  workers is needed and codes are not enumerable
- Randomness comes from the OS CSPRNG (secrets.token_bytes)
- One random byte per symbol, mapped with ``byte % 62``

Known bias:
    256 is not a multiple of 62, so the byte values 248..255 wrap onto
    the first eight symbols ("0" to "7"). Those symbols come up with
    probability 5/256 instead of 4/256, 1.25x the others. This shrinks
    the effective code space only marginally at length 7 and is accepted
    here. Switch to rejection sampling if the codes are ever used as
    secrets.
"""

import secrets
import string

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
DEFAULT_CODE_LENGTH = 7


class CodeGenerator:
    """Generates random short codes of a fixed length."""

    def __init__(self, length: int = DEFAULT_CODE_LENGTH, alphabet: str = BASE62_ALPHABET):
        if length < 1:
            raise ValueError(f"code length must be positive, got {length}")
        if len(set(alphabet)) != len(alphabet) or len(alphabet) < 2:
            raise ValueError("alphabet must contain at least two distinct symbols")
        self.length = length
        self.alphabet = alphabet

    @property
    def code_space(self) -> int:
        """Number of distinct codes this generator can produce."""
        return len(self.alphabet) ** self.length

    def generate(self) -> str:
        """
        Return a new random code.

        Failure of the OS randomness source propagates unchanged.
        """
        alphabet = self.alphabet
        size = len(alphabet)
        return "".join(alphabet[byte % size] for byte in secrets.token_bytes(self.length))

    def is_valid(self, code: str) -> bool:
        """True if ``code`` could have been produced by this generator."""
        return len(code) == self.length and all(ch in self.alphabet for ch in code)
