"""Correlation of smell instances across renames and moves.

When the code unit hosting a smell is renamed or moved, the smell feed
reports it under a new identity. Without correlation the old instance would
look refactored and the new one introduced. The checker matches a newly
seen instance against the instances that just disappeared, using:

* rename evidence from git: the instance key rewritten from the new unit
  name to the old one, or the same member hosted in the old file;
* the structural signature of the key. With the same member, a unit with
  the same class path moved to another package matches. Within the same
  package, a renamed innermost class matches when enough of its name words
  overlap. Anonymous classes (``Outer$1``) only match through rename
  evidence.

Package names never count towards the similarity. This is a heuristic;
missed matches surface as duplicate introductions.
"""

import re
from pathlib import PurePosixPath
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

import structlog

from smelltrack.models import FileRename, SmellInstance

logger = structlog.get_logger(__name__)

MEMBER_SEPARATOR = "#"
NESTED_SEPARATOR = "$"
_PATH_SEPARATORS = re.compile(r"[/\\:]+")
_NAME_WORDS = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")

# Moves rank above any in-package rename score, which is at most 1.0.
_MOVE_SCORE = 1.0


def split_instance(instance: str) -> Tuple[Optional[str], str]:
    """Split an instance key into its member name and enclosing unit.

    ``"onCreate#com.example.MainActivity"`` gives
    ``("onCreate", "com.example.MainActivity")``; keys without a member
    (class level smells) give ``(None, key)``.
    """
    if MEMBER_SEPARATOR in instance:
        member, unit = instance.split(MEMBER_SEPARATOR, 1)
        return member or None, unit
    return None, instance


def split_unit(unit: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Split an enclosing unit into its package and its class path.

    ``"com.example.Outer$Inner"`` gives
    ``(("com", "example"), ("Outer", "Inner"))``.
    """
    segments = [segment for segment in _PATH_SEPARATORS.sub(".", unit).split(".") if segment]
    if not segments:
        return (), ()
    class_path = tuple(part for part in segments[-1].split(NESTED_SEPARATOR) if part)
    return tuple(segments[:-1]), class_path


def name_words(name: str) -> FrozenSet[str]:
    """Lower-cased camel case words of a class name."""
    return frozenset(word.lower() for word in _NAME_WORDS.findall(name))


def _jaccard(left: FrozenSet[str], right: FrozenSet[str]) -> float:
    if not left and not right:
        return 1.0
    return len(left & right) / len(left | right)


def _is_anonymous(name: str) -> bool:
    return name.isdigit()


def _rename_similarity(left: Tuple[str, ...], right: Tuple[str, ...]) -> float:
    """Similarity of two class paths differing in their innermost name only."""
    if not left or len(left) != len(right) or left[:-1] != right[:-1]:
        return 0.0
    if _is_anonymous(left[-1]) or _is_anonymous(right[-1]):
        return 0.0
    return _jaccard(name_words(left[-1]), name_words(right[-1]))


def _file_unit(path: str) -> str:
    return PurePosixPath(path.replace("\\", "/")).stem


class SmellDuplicationChecker:
    """Tells whether a new smell instance continues an existing one."""

    def __init__(self, similarity_threshold: float = 0.75) -> None:
        """Initialize the checker.

        Args:
            similarity_threshold: Minimum overlap of class name words for a
                class renamed within its package to match
        """
        if not 0.0 < similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be in (0, 1]: {similarity_threshold}")
        self.similarity_threshold = similarity_threshold

    def is_duplicate(
        self,
        candidate: SmellInstance,
        known: Iterable[SmellInstance],
        renames: Sequence[FileRename] = (),
    ) -> bool:
        """Check if ``candidate`` is a renamed or moved instance of a known smell."""
        return self.find_original(candidate, known, renames) is not None

    def find_original(
        self,
        candidate: SmellInstance,
        known: Iterable[SmellInstance],
        renames: Sequence[FileRename] = (),
    ) -> Optional[SmellInstance]:
        """Find the known instance ``candidate`` continues, if any.

        Args:
            candidate: Newly seen instance
            known: Instances tracked as present that are no longer reported
            renames: Files renamed by the current commit

        Returns:
            The matching known instance, or None
        """
        same_type = [smell for smell in known if smell.type == candidate.type]
        if not same_type:
            return None
        if any(smell.key == candidate.key for smell in same_type):
            return next(smell for smell in same_type if smell.key == candidate.key)

        original = self._match_rename(candidate, same_type, renames)
        if original is None:
            original = self._match_signature(candidate, same_type)

        if original is not None:
            logger.debug(
                "smell_duplicate_found",
                type=candidate.type,
                instance=candidate.instance,
                original=original.instance,
            )
        return original

    def _match_rename(
        self,
        candidate: SmellInstance,
        known: List[SmellInstance],
        renames: Sequence[FileRename],
    ) -> Optional[SmellInstance]:
        member, _ = split_instance(candidate.instance)
        for rename in renames:
            if candidate.file is not None and candidate.file != rename.new_path:
                continue

            old_unit, new_unit = _file_unit(rename.old_path), _file_unit(rename.new_path)
            expected = candidate.instance
            if old_unit != new_unit:
                expected = re.sub(
                    rf"(?<![\w]){re.escape(new_unit)}(?![\w])", old_unit, candidate.instance
                )

            for smell in known:
                if smell.instance == expected:
                    return smell
                if (
                    candidate.file is not None
                    and smell.file == rename.old_path
                    and split_instance(smell.instance)[0] == member
                ):
                    return smell
        return None

    def _match_signature(
        self, candidate: SmellInstance, known: List[SmellInstance]
    ) -> Optional[SmellInstance]:
        member, unit = split_instance(candidate.instance)
        package, class_path = split_unit(unit)
        if not class_path:
            return None

        best: Optional[SmellInstance] = None
        best_score = 0.0
        for smell in known:
            smell_member, smell_unit = split_instance(smell.instance)
            if smell_member != member:
                continue
            smell_package, smell_class_path = split_unit(smell_unit)
            if smell_class_path == class_path:
                # same unit moved to another package, the closest package wins
                score = _MOVE_SCORE + _jaccard(frozenset(package), frozenset(smell_package))
            elif smell_package == package:
                score = _rename_similarity(class_path, smell_class_path)
                if score < self.similarity_threshold:
                    continue
            else:
                continue
            if score > best_score:
                best, best_score = smell, score
        return best
