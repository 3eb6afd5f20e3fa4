"""Team token derivation.

Tokens are derived from a shared secret by chained MD5: the first token is
the digest of the secret, each following token is the digest of the
previous token's raw digest. The team number is the token's position in the
table, so any holder of the secret can recompute the same table.

Anyone holding token ``i`` can compute tokens ``i+1`` onwards.
"""

import hashlib
from typing import Iterator, List, Optional, Union

DEFAULT_TEAM_COUNT = 20


def derive_tokens(secret: Union[str, bytes], n: int = DEFAULT_TEAM_COUNT) -> List[str]:
    """Return the *n* hex tokens derived from *secret*."""
    if n < 0:
        raise ValueError(f"team count must be non-negative, got {n}")
    data = secret.encode() if isinstance(secret, str) else bytes(secret)
    tokens = []
    for _ in range(n):
        digest = hashlib.md5(data).digest()
        tokens.append(digest.hex())
        data = digest
    return tokens


class TokenTable:
    """Immutable, ordered table mapping tokens to team numbers."""

    def __init__(self, secret: Union[str, bytes], n: int = DEFAULT_TEAM_COUNT):
        self._tokens = tuple(derive_tokens(secret, n))

    def lookup(self, token: Optional[str]) -> Optional[int]:
        """Return the team number for *token*, or None if it is not in the table."""
        if not token:
            return None
        for team, candidate in enumerate(self._tokens):
            if candidate == token:
                return team
        return None

    def __getitem__(self, team: int) -> str:
        return self._tokens[team]

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)
