# Copyright Red Hat
#
# debdiff/sysdiff/ignore.py - System diff ignore rules
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Ignore rule matching and loading.

An ignore rule is either a literal path prefix, matching the path itself
and everything beneath it, or a shell glob matched against the whole path.
Rules are read from a directory of rule files, one rule per line.
"""
from typing import Iterable, Iterator, List, Optional, Tuple
from abc import ABC, abstractmethod
from fnmatch import translate
import logging
import re
import os

from debdiff import DEBDIFF_SUBSYSTEM_IGNORE, DebdiffIgnoreError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_ignore(msg, *args, **kwargs):
    """A wrapper for ignore subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": DEBDIFF_SUBSYSTEM_IGNORE}, **kwargs)


#: Characters that make a rule a glob pattern.
GLOB_CHARS = "*?["

#: Rule file comment leader.
COMMENT_CHAR = "#"


class IgnoreRule(ABC):
    """
    Base class for ignore rules.
    """

    def __init__(self, rule: str):
        """
        Initialise a new ``IgnoreRule``.

        :param rule: The rule source text.
        :type rule: ``str``
        """
        self.rule = rule

    def __repr__(self):
        return f"{self.__class__.__name__}({self.rule!r})"

    def __eq__(self, other):
        if not isinstance(other, IgnoreRule):
            return NotImplemented
        return type(self) is type(other) and self.rule == other.rule

    def __hash__(self):
        return hash((type(self), self.rule))

    @abstractmethod
    def match(self, path: str) -> bool:
        """
        Return ``True`` if ``path`` matches this rule.

        :param path: The candidate path.
        :type path: ``str``
        :returns: ``True`` if the path matches or ``False`` otherwise.
        :rtype: ``bool``
        """


class LiteralRule(IgnoreRule):
    """
    A literal path rule: matches the path itself and any path nested
    beneath it.
    """

    def __init__(self, rule: str):
        super().__init__(rule)
        self._subtree_prefix = rule + "/"

    def match(self, path: str) -> bool:
        if path == self.rule:
            return True
        return path.startswith(self._subtree_prefix)


def _check_brackets(pattern: str):
    """
    Reject bracket expressions that are never closed.

    ``fnmatch`` treats an unterminated ``[`` as a literal character, which
    would silently turn a mistyped glob into a rule that never matches.

    :param pattern: The glob pattern to check.
    :type pattern: ``str``
    :raises: ``ValueError`` if a bracket expression is unterminated.
    """
    i = 0
    n = len(pattern)
    while i < n:
        if pattern[i] == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            # A leading ']' is part of the set.
            if j < n and pattern[j] == "]":
                j += 1
            j = pattern.find("]", j)
            if j < 0:
                raise ValueError(f"unterminated bracket expression at offset {i}")
            i = j
        i += 1


#: Glob syntax that ``fnmatch`` would treat as literal text.
UNSUPPORTED_GLOB_CHARS = "{\\"


def _check_unsupported(pattern: str):
    """
    Reject brace alternation and backslash escapes, which ``fnmatch``
    does not implement.

    :param pattern: The glob pattern to check.
    :type pattern: ``str``
    :raises: ``ValueError`` if ``pattern`` uses unsupported syntax.
    """
    for i, c in enumerate(pattern):
        if c in UNSUPPORTED_GLOB_CHARS:
            raise ValueError(f"unsupported glob syntax '{c}' at offset {i}")


class GlobRule(IgnoreRule):
    """
    A shell glob rule matched against the complete path. Wildcards match
    across path separators. Brace alternation (``{a,b}``) and backslash
    escapes are not supported.
    """

    def __init__(self, rule: str):
        super().__init__(rule)
        _check_unsupported(rule)
        _check_brackets(rule)
        self._regex = re.compile(translate(rule))

    def match(self, path: str) -> bool:
        return self._regex.match(path) is not None


def is_glob(rule: str) -> bool:
    """
    Return ``True`` if ``rule`` contains glob special characters.

    :param rule: The rule source text.
    :type rule: ``str``
    :rtype: ``bool``
    """
    return any(c in rule for c in GLOB_CHARS)


def make_rule(rule: str) -> IgnoreRule:
    """
    Classify ``rule`` and return the matching ``IgnoreRule`` instance.

    :param rule: The rule source text.
    :type rule: ``str``
    :returns: A ``GlobRule`` if ``rule`` contains any of ``*?[`` or a
              ``LiteralRule`` otherwise.
    :rtype: ``IgnoreRule``
    :raises: ``DebdiffIgnoreError`` if a glob pattern cannot be compiled.
    """
    if not is_glob(rule):
        return LiteralRule(rule)
    try:
        return GlobRule(rule)
    except (ValueError, re.error) as err:
        raise DebdiffIgnoreError(f"invalid glob pattern '{rule}': {err}") from err


class IgnoreRules:
    """
    A flat, unordered collection of ignore rules. A path is ignored if any
    rule matches it.
    """

    def __init__(self, rules: Optional[Iterable[IgnoreRule]] = None):
        self._rules: Tuple[IgnoreRule, ...] = tuple(rules or ())

    def __len__(self):
        return len(self._rules)

    def __iter__(self) -> Iterator[IgnoreRule]:
        return iter(self._rules)

    def __bool__(self):
        return bool(self._rules)

    def __repr__(self):
        return f"IgnoreRules({list(self._rules)!r})"

    def is_ignored(self, path: str) -> bool:
        """
        Return ``True`` if any rule in this collection matches ``path``.

        :param path: The candidate path.
        :type path: ``str``
        :rtype: ``bool``
        """
        return any(rule.match(path) for rule in self._rules)


def parse_rules(lines: Iterable[str]) -> List[IgnoreRule]:
    """
    Parse rule file lines into a list of ``IgnoreRule`` objects. Blank
    lines and lines starting with '#' are skipped. Only a trailing '\\n'
    or '\\r\\n' is removed from each line.

    :param lines: An iterable of rule file lines.
    :type lines: ``Iterable[str]``
    :returns: The parsed rules in file order.
    :rtype: ``List[IgnoreRule]``
    """
    rules = []
    for line in lines:
        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        if not line or line.startswith(COMMENT_CHAR):
            continue
        rules.append(make_rule(line))
    return rules


def _raise_walk_error(err: OSError):
    """``os.walk()`` error callback: every walk error is fatal."""
    raise err


def load_ignore_rules(ignore_dir: Optional[str]) -> IgnoreRules:
    """
    Load every rule file found beneath ``ignore_dir``.

    :param ignore_dir: The directory to read rule files from, or ``None``
                       (or the empty string) to disable ignore rules.
    :type ignore_dir: ``Optional[str]``
    :returns: The loaded rules.
    :rtype: ``IgnoreRules``
    :raises: ``DebdiffIgnoreError`` if the directory cannot be walked, a
             rule file cannot be read, or a rule is an invalid glob.
    """
    if not ignore_dir:
        return IgnoreRules()

    if not os.path.isdir(ignore_dir):
        raise DebdiffIgnoreError(
            f"walking ignore directory: {ignore_dir}: not a directory"
        )

    rules = []
    try:
        for dirpath, dirnames, filenames in os.walk(
            ignore_dir, onerror=_raise_walk_error
        ):
            dirnames.sort()
            for name in sorted(filenames):
                rule_file = os.path.join(dirpath, name)
                try:
                    with open(
                        rule_file,
                        "r",
                        encoding="utf8",
                        errors="surrogateescape",
                        newline="\n",
                    ) as fp:
                        file_rules = parse_rules(fp)
                except OSError as err:
                    raise DebdiffIgnoreError(
                        f"reading ignore file: {rule_file}: {err}"
                    ) from err
                _log_debug_ignore(
                    "Loaded %d ignore rules from %s", len(file_rules), rule_file
                )
                rules.extend(file_rules)
    except OSError as err:
        raise DebdiffIgnoreError(f"walking ignore directory: {err}") from err

    _log_debug("Loaded %d ignore rules from %s", len(rules), ignore_dir)
    return IgnoreRules(rules)
