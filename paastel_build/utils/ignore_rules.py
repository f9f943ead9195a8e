"""
Ignore Rules
============
Parses the build-context ignore file (``.dockerignore`` by default) into an
ordered rule list and decides whether a context entry is excluded.

Rule file format:
    - one rule per line, surrounding whitespace trimmed
    - blank lines and lines starting with '#' are dropped
    - '!pattern' re-includes whatever pattern matches
    - every other line excludes whatever it matches
    - a rule that can never match (a lone "/") is skipped with a warning

Evaluation:
    Rules are ORDER-SENSITIVE. Every rule is tested against the full
    forward-slash relative path; the LAST matching rule decides. A path
    that no rule matches is included.

Glob dialect:
    gitwildmatch, compiled per rule with ``pathspec``:
        node_modules   matches that segment at any depth (and everything
                       below it), but not "node_modules.log"
        build/         matches everything below any "build" directory
        *.log          matches by basename at any depth
        /dist          anchored at the context root
        docs/**/*.md   '**' crosses directory boundaries
"""
import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional

from pathspec.patterns import GitWildMatchPattern

from paastel_build.core.constants import DEFAULT_IGNORE_FILE
from paastel_build.core.exceptions import ContextIOError, PatternError

logger = logging.getLogger(__name__)

_COMMENT_PREFIX = "#"
_NEGATION_PREFIX = "!"


@dataclass(frozen=True)
class IgnoreRule:
    """
    A single compiled rule.

    Fields
    ------
    pattern : GitWildMatchPattern
        Compiled matcher for the rule text (negation marker removed).
    exclude : bool
        True for a plain rule, False for a '!' re-include rule.
    raw_line : str
        The line exactly as it appeared in the file.
    line_number : int
        1-based line number in the ignore file.
    """
    pattern: Any
    exclude: bool
    raw_line: str
    line_number: int

    def matches(self, relative_path: str) -> bool:
        return self.pattern.match_file(relative_path) is not None


def compile_rule(raw_line: str, line_number: int, source: str = DEFAULT_IGNORE_FILE) -> Optional[IgnoreRule]:
    """
    Compile one ignore-file line.

    Returns None for blank and comment lines, and for a rule that can never
    match anything (such as a lone "/"), which is skipped with a warning.

    Raises
    ------
    PatternError
        If the pattern cannot be compiled or a '!' has nothing after it.
    """
    line = raw_line.strip()
    if not line or line.startswith(_COMMENT_PREFIX):
        return None

    exclude = True
    if line.startswith(_NEGATION_PREFIX):
        line = line[len(_NEGATION_PREFIX):].lstrip()
        exclude = False
        if not line:
            raise PatternError(raw_line, source, line_number, "negation without a pattern")

    try:
        pattern = GitWildMatchPattern(line)
    except ValueError as e:
        raise PatternError(raw_line, source, line_number, str(e)) from e

    # pathspec yields a null pattern for text that can never match, e.g. "/"
    if pattern.include is None:
        logger.warning("Skipping %s line %d: %r matches nothing", source, line_number, raw_line)
        return None

    return IgnoreRule(pattern=pattern, exclude=exclude, raw_line=raw_line, line_number=line_number)


class IgnoreRuleEngine:
    """
    Ordered ignore rules for one archiving run.

    Built once from the ignore file and read-only afterwards.
    """

    def __init__(self, rules: List[IgnoreRule], source: str = DEFAULT_IGNORE_FILE):
        self._rules = tuple(rules)
        self.source = source

    @property
    def rules(self) -> tuple:
        return self._rules

    @property
    def has_negations(self) -> bool:
        return any(not rule.exclude for rule in self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def from_lines(cls, lines, source: str = DEFAULT_IGNORE_FILE) -> "IgnoreRuleEngine":
        """
        Compile every usable line, in order.

        Any bad line aborts the whole build: no partial rule list is ever
        returned.
        """
        rules = []
        for line_number, raw_line in enumerate(lines, 1):
            rule = compile_rule(raw_line.rstrip("\r\n"), line_number, source)
            if rule is not None:
                rules.append(rule)
        return cls(rules, source)

    @classmethod
    def load(cls, root_dir: str, ignore_file: str = DEFAULT_IGNORE_FILE) -> Optional["IgnoreRuleEngine"]:
        """
        Load the ignore file at the context root.

        Returns None when the file does not exist or holds no usable rules.

        Raises
        ------
        PatternError
            On the first uncompilable rule.
        ContextIOError
            If the file exists but cannot be read.
        """
        path = os.path.join(root_dir, ignore_file)
        if not os.path.isfile(path):
            logger.debug("No ignore file at %s", path)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise ContextIOError(path, str(e)) from e

        engine = cls.from_lines(lines, source=path)
        if not engine:
            logger.info("Ignore file %s has no rules", path)
            return None

        logger.info("Loaded %d ignore rule(s) from %s", len(engine), path)
        return engine

    def is_excluded(self, relative_path: str) -> bool:
        """
        Return True if the last rule matching ``relative_path`` excludes it.

        ``relative_path`` must already be in forward-slash form.
        """
        matched_any = False
        last_exclude = False

        for rule in self._rules:
            if rule.matches(relative_path):
                matched_any = True
                last_exclude = rule.exclude

        return matched_any and last_exclude
