from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Tuple

from constants import HASH_ALGORITHM


@dataclass(frozen=True)
class Machine:
    name: str
    sid: str
    digest: str
    assigned_group: str


class Outcome(Enum):
    ALREADY_MEMBER = "already_member"
    VERIFIED = "verified"
    ADD_FAILED = "add_failed"
    WOULD_ADD = "would_add"


class GroupMembershipIndex:
    """
    Read-only snapshot of group name -> transitive member names.

    Group and member names are compared case-insensitively, the same way
    the directory compares them.
    """

    def __init__(self, memberships: Dict[str, Iterable[str]]):
        names = {}
        members = {}
        for group_name, group_members in memberships.items():
            key = group_name.casefold()
            names[key] = group_name
            members[key] = frozenset(member.casefold() for member in group_members)

        self._names = MappingProxyType(names)
        self._members = MappingProxyType(members)


    def __len__(self):
        return len(self._members)


    def __contains__(self, group_name: str) -> bool:
        return group_name.casefold() in self._members


    @property
    def groups(self) -> List[str]:
        return sorted(self._names.values())


    def members(self, group_name: str) -> frozenset:
        """Casefolded member names of the group, empty if the group is unknown."""
        return self._members.get(group_name.casefold(), frozenset())


    def is_member(self, group_name: str, member_name: str) -> bool:
        return member_name.casefold() in self.members(group_name)


@dataclass(frozen=True)
class ShardSettings:
    machine_ous: Tuple[str, ...]
    group_prefix: str
    group_ou: str
    recursive: bool = False
    hash_algorithm: str = HASH_ALGORITHM
    deduplicate_machines: bool = False
    dry_run: bool = False


@dataclass
class ShardResult:
    outcomes: List[Tuple[Machine, Outcome]] = field(default_factory=list)

    def record(self, machine: Machine, outcome: Outcome) -> None:
        self.outcomes.append((machine, outcome))


    def _count(self, outcome: Outcome) -> int:
        return sum(1 for _, recorded in self.outcomes if recorded is outcome)


    @property
    def assigned(self) -> int:
        return len(self.outcomes)


    @property
    def already_member(self) -> int:
        return self._count(Outcome.ALREADY_MEMBER)


    @property
    def added(self) -> int:
        return self._count(Outcome.VERIFIED)


    @property
    def failed(self) -> int:
        return self._count(Outcome.ADD_FAILED)


    @property
    def would_add(self) -> int:
        return self._count(Outcome.WOULD_ADD)


    @property
    def succeeded(self) -> bool:
        return self.failed == 0


    def summary(self) -> str:
        return (
            f"{self.assigned} assigned, {self.already_member} already member, "
            f"{self.added} added, {self.failed} failed, {self.would_add} pending (dry run)"
        )
