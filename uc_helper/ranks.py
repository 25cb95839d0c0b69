from __future__ import annotations

from enum import IntEnum

ICON_URL_TEMPLATE = "https://tetr.io/res/league-ranks/%s.png"


class Rank(IntEnum):
    """TETR.IO league tiers, ordered from lowest to highest."""

    UNRANKED = 0
    D = 1
    D_PLUS = 2
    C_MINUS = 3
    C = 4
    C_PLUS = 5
    B_MINUS = 6
    B = 7
    B_PLUS = 8
    A_MINUS = 9
    A = 10
    A_PLUS = 11
    S_MINUS = 12
    S = 13
    S_PLUS = 14
    SS = 15
    U = 16
    X = 17

    @classmethod
    def parse(cls, code: str | None) -> Rank:
        """Return the tier for an API rank code; unknown codes are unranked."""
        if not code:
            return cls.UNRANKED
        return _BY_CODE.get(code.strip().lower(), cls.UNRANKED)

    def advance(self, steps: int = 1) -> Rank:
        if steps < 0:
            raise ValueError("Cannot advance a rank by a negative number of tiers")
        return Rank(min(self.value + steps, Rank.X.value))

    @property
    def code(self) -> str:
        return _CODES[self]

    @property
    def display_code(self) -> str:
        return self.code.upper()

    @property
    def color(self) -> str:
        return _COLORS[self]

    @property
    def color_value(self) -> int:
        return int(self.color, 16)

    @property
    def icon_url(self) -> str:
        return ICON_URL_TEMPLATE % self.code

    def __str__(self) -> str:
        return self.display_code


_CODES: dict[Rank, str] = {
    Rank.UNRANKED: "z",
    Rank.D: "d",
    Rank.D_PLUS: "d+",
    Rank.C_MINUS: "c-",
    Rank.C: "c",
    Rank.C_PLUS: "c+",
    Rank.B_MINUS: "b-",
    Rank.B: "b",
    Rank.B_PLUS: "b+",
    Rank.A_MINUS: "a-",
    Rank.A: "a",
    Rank.A_PLUS: "a+",
    Rank.S_MINUS: "s-",
    Rank.S: "s",
    Rank.S_PLUS: "s+",
    Rank.SS: "ss",
    Rank.U: "u",
    Rank.X: "x",
}

# "z" is only a display code, never parsed back to a tier
_BY_CODE: dict[str, Rank] = {
    code: rank for rank, code in _CODES.items() if rank is not Rank.UNRANKED
}

_COLORS: dict[Rank, str] = {
    Rank.UNRANKED: "828282",
    Rank.D: "856C84",
    Rank.D_PLUS: "815880",
    Rank.C_MINUS: "6C417C",
    Rank.C: "67287B",
    Rank.C_PLUS: "522278",
    Rank.B_MINUS: "5949BE",
    Rank.B: "4357B5",
    Rank.B_PLUS: "4880B2",
    Rank.A_MINUS: "35AA8C",
    Rank.A: "3EA750",
    Rank.A_PLUS: "43B536",
    Rank.S_MINUS: "B79E2B",
    Rank.S: "D19E26",
    Rank.S_PLUS: "DBAF37",
    Rank.SS: "E39D3B",
    Rank.U: "C75C2E",
    Rank.X: "B852BF",
}


__all__ = ["Rank", "ICON_URL_TEMPLATE"]
