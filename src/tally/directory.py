"""Read-only member roster snapshots."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from tally.models import Member


class MemberSource(Protocol):
    """Anything that can hand out the current member roster."""

    def get_members(self) -> list[Member]: ...


class MemberDirectory:
    """Immutable snapshot of the roster, indexed by id and by name.

    Names aren't guaranteed unique; a name lookup returns the first member
    carrying that name in roster order.
    """

    def __init__(self, members: Iterable[Member] = ()):
        self._members: tuple[Member, ...] = tuple(members)
        self._by_id: dict[str, Member] = {}
        self._by_name: dict[str, Member] = {}
        for m in self._members:
            self._by_id.setdefault(m.id, m)
            self._by_name.setdefault(m.name, m)

    @classmethod
    def from_source(cls, source: MemberSource) -> MemberDirectory:
        return cls(source.get_members())

    def __iter__(self):
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, member_id: object) -> bool:
        return member_id in self._by_id

    def by_id(self, member_id: str) -> Member | None:
        return self._by_id.get(member_id)

    def by_name(self, name: str) -> Member | None:
        return self._by_name.get(name)

    def by_email(self, email: str) -> Member | None:
        needle = email.strip().lower()
        if not needle:
            return None
        return next(
            (m for m in self._members if m.email.strip().lower() == needle), None
        )
