"""
Pedigree and read-group descriptions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .trees import SampleTree


class Sex(str, Enum):
    """Sex of a pedigree member."""
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, text: Optional[str]) -> "Sex":
        """Parse 'male'/'m'/'1' or 'female'/'f'/'2'; anything else is unknown."""
        if text is None:
            return cls.UNKNOWN
        value = str(text).strip().lower()
        if value in ("male", "m", "1"):
            return cls.MALE
        if value in ("female", "f", "2"):
            return cls.FEMALE
        return cls.UNKNOWN


_MISSING_PARENT = ("", "0", ".")


def _parent_name(value) -> Optional[str]:
    """Parent name as text; None for the usual missing-parent markers."""
    if value is None:
        return None
    value = str(value).strip()
    return None if value in _MISSING_PARENT else value


@dataclass
class Member:
    """
    One individual of a pedigree.

    Attributes
    ----------
    name : str
        Unique individual name
    dad : Optional[str]
        Name of the father, None if unknown
    mom : Optional[str]
        Name of the mother, None if unknown
    sex : Sex
        Sex of the individual
    samples : Optional[str]
        Newick description of the somatic tree. None means a single
        sample named after the individual.
    """

    name: str
    dad: Optional[str] = None
    mom: Optional[str] = None
    sex: Sex = Sex.UNKNOWN
    samples: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Pedigree member must have a name")
        self.dad = _parent_name(self.dad)
        self.mom = _parent_name(self.mom)
        if self.name in (self.dad, self.mom):
            raise ValueError(f"Member '{self.name}' cannot be its own parent")
        if not isinstance(self.sex, Sex):
            self.sex = Sex.parse(self.sex)

    def sample_tree(self) -> SampleTree:
        """Somatic tree of this member."""
        if self.samples is None:
            return SampleTree.single(self.name)
        return SampleTree.from_newick(self.samples)


@dataclass
class Pedigree:
    """
    Ordered collection of pedigree members.

    Parents must be listed as members of the same pedigree.
    """

    members: List[Member] = field(default_factory=list)

    def __post_init__(self):
        members, self.members = self.members, []
        for member in members:
            self.add_member(member)

    def add_member(self, member: Member) -> None:
        """Append a member, rejecting duplicate names."""
        if any(m.name == member.name for m in self.members):
            raise ValueError(f"Duplicate pedigree member: {member.name}")
        self.members.append(member)

    def member(self, name: str) -> Member:
        for m in self.members:
            if m.name == name:
                return m
        raise KeyError(name)

    def validate(self) -> None:
        """Check that every referenced parent is a member."""
        names = {m.name for m in self.members}
        for m in self.members:
            for parent in (m.dad, m.mom):
                if parent is not None and parent not in names:
                    raise ValueError(
                        f"Parent '{parent}' of '{m.name}' is not a pedigree member"
                    )

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[Member]:
        return iter(self.members)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "Pedigree":
        """
        Build a pedigree from dictionaries.

        Each record needs a ``name`` and may carry ``dad``, ``mom``,
        ``sex`` and ``samples``.
        """
        members = [
            Member(
                name=str(r["name"]),
                dad=r.get("dad"),
                mom=r.get("mom"),
                sex=Sex.parse(r.get("sex")),
                samples=r.get("samples"),
            )
            for r in records
        ]
        pedigree = cls(members)
        pedigree.validate()
        return pedigree


@dataclass(frozen=True)
class Library:
    """A sequencing library and the sample it was prepared from."""
    name: str
    sample: str


@dataclass
class ReadGroups:
    """
    Ordered sequencing libraries.

    The order of libraries is the order of depth rows and of library
    nodes in the relationship graph.
    """

    libraries: List[Library] = field(default_factory=list)

    def __post_init__(self):
        names = [lib.name for lib in self.libraries]
        if len(set(names)) != len(names):
            raise ValueError("Duplicate library names in read groups")

    @property
    def names(self) -> List[str]:
        return [lib.name for lib in self.libraries]

    def retain(self, names: Iterable[str]) -> List[int]:
        """
        Keep only the named libraries, preserving order.

        Returns
        -------
        list[int]
            Original indices of the kept libraries
        """
        keep = set(names)
        kept_index = [i for i, lib in enumerate(self.libraries) if lib.name in keep]
        self.libraries = [self.libraries[i] for i in kept_index]
        return kept_index

    def __len__(self) -> int:
        return len(self.libraries)

    def __iter__(self) -> Iterator[Library]:
        return iter(self.libraries)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "ReadGroups":
        """Build read groups from ``{"name": ..., "sample": ...}`` records."""
        return cls([Library(name=str(r["name"]), sample=str(r["sample"])) for r in records])
