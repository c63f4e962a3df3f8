#!/usr/bin/env python3
"""
Technique Range Resolver

Criteria files are stored either one technique per file
(e.g. macos/T1000_macos.csv) or as a contiguous block of techniques
(e.g. windows/T1027-T1047.csv). This module turns a file name into the
technique identifiers it covers.

Resolution never raises for bad input. Every outcome is a tagged result:

    TechniqueSpan       - success, iterates T<lower> .. T<upper> inclusive
    SingleTechnique     - success, the one T<digits> ID exactly as written
    MalformedRange      - a range bound could not be parsed
    InvertedRange       - range lower bound exceeds upper bound
    NoTechniqueIDFound  - a single-file name without any T<digits> pattern

Failures iterate as empty so callers can treat every result uniformly, but
should check `ok` and log `describe()` before skipping the file.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Union

# Technique ID pattern: 'T' followed by one or more digits. Sub-technique
# suffixes (.001) are not part of the identifier.
TECHNIQUE_PATTERN = re.compile(r'T(\d+)')
TECHNIQUE_ID_PATTERN = re.compile(r'T\d+')
RANGE_SEPARATOR = '-'

_DIGITS = re.compile(r'[0-9]+')


@dataclass(frozen=True)
class TechniqueSpan:
    """Inclusive span of technique numbers covered by one file"""
    lower: int
    upper: int

    ok = True

    def __iter__(self) -> Iterator[str]:
        # A fresh generator per call keeps the span restartable
        return (f"T{number}" for number in range(self.lower, self.upper + 1))

    def __len__(self) -> int:
        return self.upper - self.lower + 1

    def describe(self) -> str:
        if self.lower == self.upper:
            return f"T{self.lower}"
        return f"T{self.lower}-T{self.upper} ({len(self)} techniques)"


@dataclass(frozen=True)
class SingleTechnique:
    """One technique ID taken verbatim from a single-technique file name"""
    technique_id: str

    ok = True

    def __iter__(self) -> Iterator[str]:
        return iter((self.technique_id,))

    def __len__(self) -> int:
        return 1

    def describe(self) -> str:
        return self.technique_id


@dataclass(frozen=True)
class MalformedRange:
    file_name: str
    reason: str

    ok = False

    def __iter__(self) -> Iterator[str]:
        return iter(())

    def describe(self) -> str:
        return f"Malformed technique range in '{self.file_name}': {self.reason}"


@dataclass(frozen=True)
class InvertedRange:
    file_name: str
    lower: int
    upper: int

    ok = False

    def __iter__(self) -> Iterator[str]:
        return iter(())

    def describe(self) -> str:
        return f"Inverted technique range in '{self.file_name}': T{self.lower} > T{self.upper}"


@dataclass(frozen=True)
class NoTechniqueIDFound:
    file_name: str

    ok = False

    def __iter__(self) -> Iterator[str]:
        return iter(())

    def describe(self) -> str:
        return f"Expected a single technique file but could not find a technique ID in '{self.file_name}'"


Resolution = Union[TechniqueSpan, SingleTechnique, MalformedRange, InvertedRange, NoTechniqueIDFound]


def is_technique_id(value: str) -> bool:
    """True when value is exactly a T<digits> technique identifier"""
    return bool(TECHNIQUE_ID_PATTERN.fullmatch(value))


def _parse_bound(token: str):
    """Strip one leading 'T' and parse the rest as an unsigned integer, or None"""
    if token.startswith('T'):
        token = token[1:]
    if not _DIGITS.fullmatch(token):
        return None
    return int(token)


def _resolve_range(file_name: str) -> Resolution:
    # Only the second segment is the upper bound: T1-T5-old.csv is T1-T5
    segments = file_name.split(RANGE_SEPARATOR)
    lower_token, upper_token = segments[0], segments[1]

    # Discard qualifiers after the upper technique (.csv, _macos, ...)
    match = TECHNIQUE_PATTERN.search(upper_token)
    if not match:
        return MalformedRange(file_name, f"no technique ID in upper bound '{upper_token}'")

    lower = _parse_bound(lower_token)
    if lower is None:
        return MalformedRange(file_name, f"lower bound '{lower_token}' is not T<digits>")
    upper = int(match.group(1))

    if lower > upper:
        return InvertedRange(file_name, lower, upper)
    return TechniqueSpan(lower, upper)


def resolve_technique_ids(file_name: str) -> Resolution:
    """
    Resolve a remote criteria file name into the technique IDs it represents.

    Args:
        file_name: Bare file name such as 'T1027-T1047.csv' or 'T1000_macos.csv'

    Returns:
        A TechniqueSpan or SingleTechnique on success, otherwise one of the
        failure results
    """
    if RANGE_SEPARATOR in file_name:
        return _resolve_range(file_name)

    match = TECHNIQUE_PATTERN.search(file_name)
    if not match:
        return NoTechniqueIDFound(file_name)
    return SingleTechnique(match.group(0))
