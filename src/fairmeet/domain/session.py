"""
Party session.

Holds the people taking part in one meeting search. A session starts with "You" and
"Friend 1" and never drops below two parties; positions are set or cleared as
addresses are picked.
"""

from __future__ import annotations

from fairmeet.domain.models import Party, Point

MIN_PARTIES = 2
PALETTE = ["#fbbc04", "#34a853", "#a142f4", "#f06292", "#26c6da"]


def default_parties() -> list[Party]:
    return [
        Party(id="you", label="You", color="#1a73e8"),
        Party(id="friend-1", label="Friend 1", color="#ea4335"),
    ]


class MeetSession:
    def __init__(self, parties: list[Party] | None = None):
        parties = list(parties) if parties is not None else default_parties()
        if len(parties) < MIN_PARTIES:
            raise ValueError(f"a session needs at least {MIN_PARTIES} parties")
        if len({p.id for p in parties}) != len(parties):
            raise ValueError("party ids must be unique")
        self._parties = parties
        self._added = len(parties)

    @property
    def parties(self) -> list[Party]:
        return list(self._parties)

    def _index(self, party_id: str) -> int:
        for i, party in enumerate(self._parties):
            if party.id == party_id:
                return i
        raise KeyError(party_id)

    def add_party(self, label: str | None = None) -> Party:
        """Append a new unpositioned party with the next id and palette color."""
        n = self._added
        existing = {p.id for p in self._parties}
        while f"friend-{n}" in existing:
            n += 1
        party = Party(
            id=f"friend-{n}",
            label=label or f"Friend {n}",
            color=PALETTE[(n - 2) % len(PALETTE)],
        )
        self._parties.append(party)
        self._added = n + 1
        return party

    def remove_party(self, party_id: str) -> None:
        if len(self._parties) <= MIN_PARTIES:
            raise ValueError(f"a session needs at least {MIN_PARTIES} parties")
        del self._parties[self._index(party_id)]

    def rename_party(self, party_id: str, label: str) -> Party:
        i = self._index(party_id)
        self._parties[i] = self._parties[i].model_copy(update={"label": label})
        return self._parties[i]

    def update_position(self, party_id: str, position: Point | None) -> Party:
        i = self._index(party_id)
        self._parties[i] = self._parties[i].model_copy(update={"position": position})
        return self._parties[i]

    def eligible_parties(self) -> list[Party]:
        return [p for p in self._parties if p.position is not None]
