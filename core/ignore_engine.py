"""
Ignore Engine - Single source of truth cho tat ca logic ignore/gitignore.

Bien cau hinh exclusion + noi dung cac ignore files thanh mot ham quyet dinh
is_ignored(path, is_directory). Engine immutable trong suot mot lan scan:
moi pattern duoc compile (pathspec) MOT LAN luc khoi tao va dung lai cho
moi path trong cay.

Thu tu danh gia (rule dau tien co ket luan se return ngay):
1. Hidden file (ten bat dau bang ".") khi show_hidden_files=False
2. Ten nam trong default exclusions (node_modules, .git, ...)
3. User simple patterns (*x*, *x, x*, ten chinh xac)
4. Gitignore source: pattern match CUOI CUNG quyet dinh (negation -> khong ignore).
   Chi khi gitignore source khong co match nao moi xet dotignore source.
5. Khong co gi match -> giu lai

Cung cap:
- StructuredPattern: 1 dong trong ignore file da parse
- IgnoreRuleSet: Toan bo rules cho 1 lan scan (frozen)
- IgnoreEngine: Ham quyet dinh da compile
- parse_ignore_lines() / read_ignore_file(): Doc ignore files (co cache theo mtime)
- build_ignore_engine(): Tao engine tu AppSettings
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import pathspec

from config.app_settings import AppSettings
from core.constants import (
    BUILTIN_EXCLUSIONS,
    DOTIGNORE_SOURCES,
    GITIGNORE_SOURCES,
    HIDDEN_FILE_MARKER,
)
from core.logging_config import log_debug, log_warning

# Recursive wildcard
RECURSIVE_WILDCARD = "**"

# === Cache ===
# Cache noi dung ignore file: path -> ((mtime_ns, size), lines)
_ignore_file_cache: Dict[str, Tuple[Tuple[int, int], List[str]]] = {}


@dataclass(frozen=True)
class StructuredPattern:
    """
    Mot pattern gitignore-style da parse.

    Attributes:
        raw: Dong goc trong ignore file
        glob: Phan glob sau khi bo "!", "/" dau va "/" cuoi
        negated: Bat dau bang "!" (match -> KHONG ignore)
        dir_only: Ket thuc bang "/" (khong bao gio match file)
        rooted: Bat dau bang "/" (neo vao scan root)
        recursive: Chua dung MOT "**"
    """

    raw: str
    glob: str
    negated: bool = False
    dir_only: bool = False
    rooted: bool = False
    recursive: bool = False

    @classmethod
    def parse(cls, line: str) -> Optional["StructuredPattern"]:
        """
        Parse 1 dong ignore file. Tra ve None cho dong trong va comment.

        Trailing whitespace bi cat tru khi duoc escape ("\\ ").
        "\\!" va "\\#" la ky tu literal o dau pattern.
        """
        raw = line.rstrip("\r\n")
        text = raw if raw.endswith("\\ ") else raw.rstrip()

        if not text or text.startswith("#"):
            return None

        # "\!" / "\#" giu nguyen backslash, pathspec hieu la ky tu literal
        negated = text.startswith("!")
        if negated:
            text = text[1:]

        dir_only = text.endswith("/")
        text = text.rstrip("/")

        rooted = text.startswith("/")
        text = text.lstrip("/")

        if not text:
            return None

        return cls(
            raw=raw,
            glob=text,
            negated=negated,
            dir_only=dir_only,
            rooted=rooted,
            recursive=text.count(RECURSIVE_WILDCARD) == 1,
        )

    def to_gitignore_line(self) -> str:
        """
        Chuyen pattern thanh 1 dong gitignore de pathspec compile.

        - Nhieu hon 1 "**": coi nhu "*" thong thuong
        - Rooted: giu "/" dau de neo vao root
        - Non-rooted, khong co "**", chua "/": them "**/" de match o moi do sau
        - "!" va "/" cuoi duoc xu ly boi IgnoreEngine, khong dua vao pathspec
        """
        glob = self.glob
        if glob.count(RECURSIVE_WILDCARD) > 1:
            while RECURSIVE_WILDCARD in glob:
                glob = glob.replace(RECURSIVE_WILDCARD, "*")

        if self.rooted:
            return "/" + glob
        if not self.recursive and "/" in glob:
            return f"{RECURSIVE_WILDCARD}/{glob}"
        return glob


@dataclass(frozen=True)
class IgnoreRuleSet:
    """
    Toan bo ignore rules cho mot lan scan. Immutable.

    Attributes:
        default_exclusions: Ten file/folder bi loai (toggleable + built-in)
        simple_patterns: User patterns don gian, theo thu tu
        gitignore_patterns: Patterns tu .gitignore + .git/info/exclude
        dotignore_patterns: Patterns tu .ignore
        show_hidden_files: Hien thi entry bat dau bang "."
        respect_gitignore: Xet gitignore source
        respect_dotignore: Xet dotignore source
    """

    default_exclusions: FrozenSet[str] = field(default_factory=frozenset)
    simple_patterns: Tuple[str, ...] = ()
    gitignore_patterns: Tuple[StructuredPattern, ...] = ()
    dotignore_patterns: Tuple[StructuredPattern, ...] = ()
    show_hidden_files: bool = False
    respect_gitignore: bool = True
    respect_dotignore: bool = True


class _CompiledPattern:
    """StructuredPattern + pathspec matcher da compile."""

    __slots__ = ("pattern", "_spec")

    def __init__(self, pattern: StructuredPattern, spec: pathspec.PathSpec):
        self.pattern = pattern
        self._spec = spec

    def matches(self, rel_path: str, is_directory: bool) -> bool:
        if self.pattern.dir_only and not is_directory:
            return False
        return self._spec.match_file(rel_path)


def _compile_patterns(
    patterns: Iterable[StructuredPattern],
) -> Tuple[_CompiledPattern, ...]:
    """Compile patterns bang pathspec. Pattern loi bi bo qua (co log)."""
    compiled: List[_CompiledPattern] = []
    for pattern in patterns:
        try:
            spec = pathspec.PathSpec.from_lines(
                "gitignore", [pattern.to_gitignore_line()]
            )
        except ValueError as e:
            log_warning(f"[IgnoreEngine] Skipping invalid pattern {pattern.raw!r}: {e}")
            continue
        compiled.append(_CompiledPattern(pattern, spec))
    return tuple(compiled)


def _match_simple_pattern(pattern: str, name: str, rel_path: str) -> bool:
    """
    Match 1 user simple pattern.

    - "*x*": rel path chua "x"
    - "*x": rel path ket thuc bang "x"
    - "x*": ten (hoac rel path) bat dau bang "x"
    - "x": ten chinh xac, hoac rel path chua "x"
    """
    if len(pattern) > 1 and pattern.startswith("*") and pattern.endswith("*"):
        return pattern[1:-1] in rel_path
    if pattern.startswith("*"):
        return rel_path.endswith(pattern[1:])
    if pattern.endswith("*"):
        token = pattern[:-1]
        return name.startswith(token) or rel_path.startswith(token)
    return name == pattern or pattern in rel_path


class IgnoreEngine:
    """
    Ham quyet dinh ignore da compile cho 1 scan root.

    Pure: cung input + cung rule set -> cung ket qua. Thread-safe vi
    khong co mutable state sau khi khoi tao.
    """

    def __init__(self, root: Path, rules: IgnoreRuleSet):
        self._root = Path(root)
        self._root_str = str(self._root)
        self._rules = rules
        self._gitignore = (
            _compile_patterns(rules.gitignore_patterns)
            if rules.respect_gitignore
            else ()
        )
        self._dotignore = (
            _compile_patterns(rules.dotignore_patterns)
            if rules.respect_dotignore
            else ()
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def rules(self) -> IgnoreRuleSet:
        return self._rules

    def relative_path(self, path: str) -> str:
        """
        Chuyen path (tuyet doi duoi root, hoac tuong doi) thanh posix rel path.

        Tra ve "" cho chinh root.
        """
        if os.path.isabs(path):
            try:
                rel = os.path.relpath(path, self._root_str)
            except ValueError:
                # Khac drive tren Windows
                rel = path
        else:
            rel = path
        rel = rel.replace(os.sep, "/").strip("/")
        return "" if rel == "." else rel

    def is_ignored(self, path: str, is_directory: bool) -> bool:
        """
        Quyet dinh entry co bi ignore khong.

        Args:
            path: Duong dan tuyet doi duoi root hoac duong dan tuong doi voi root
            is_directory: Entry la thu muc

        Returns:
            True neu entry bi loai khoi tree
        """
        rel_path = self.relative_path(str(path))
        if not rel_path:
            return False

        name = rel_path.rsplit("/", 1)[-1]
        rules = self._rules

        if not rules.show_hidden_files and name.startswith(HIDDEN_FILE_MARKER):
            return True

        if name in rules.default_exclusions:
            return True

        for pattern in rules.simple_patterns:
            if _match_simple_pattern(pattern, name, rel_path):
                return True

        outcome = self._last_match(self._gitignore, rel_path, is_directory)
        if outcome is None:
            outcome = self._last_match(self._dotignore, rel_path, is_directory)
        return bool(outcome)

    @staticmethod
    def _last_match(
        patterns: Tuple[_CompiledPattern, ...],
        rel_path: str,
        is_directory: bool,
    ) -> Optional[bool]:
        """
        Danh gia 1 source theo thu tu file: pattern match cuoi cung thang.

        Returns:
            True/False theo pattern match cuoi, None neu khong co pattern nao match
        """
        outcome: Optional[bool] = None
        for compiled in patterns:
            if compiled.matches(rel_path, is_directory):
                outcome = not compiled.pattern.negated
        return outcome


def parse_ignore_lines(lines: Iterable[str]) -> List[StructuredPattern]:
    """Parse cac dong cua ignore file thanh StructuredPattern (bo comment/dong trong)."""
    patterns: List[StructuredPattern] = []
    for line in lines:
        pattern = StructuredPattern.parse(line)
        if pattern is not None:
            patterns.append(pattern)
    return patterns


def read_ignore_file(path: Path) -> List[str]:
    """
    Doc raw lines cua mot ignore file (co cache theo mtime + size).

    File khong ton tai hoac khong doc duoc -> list rong, KHONG raise.
    """
    key = str(path)
    try:
        stat = path.stat()
    except OSError:
        _ignore_file_cache.pop(key, None)
        return []

    signature = (stat.st_mtime_ns, stat.st_size)
    cached = _ignore_file_cache.get(key)
    if cached is not None and cached[0] == signature:
        return list(cached[1])

    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        log_debug(f"[IgnoreEngine] Cannot read {path}: {e}")
        return []

    lines = content.splitlines()
    _ignore_file_cache[key] = (signature, lines)
    return list(lines)


def load_source_patterns(root: Path, sources: Iterable[str]) -> List[StructuredPattern]:
    """Doc va parse cac ignore files cua 1 source, gop theo thu tu."""
    lines: List[str] = []
    for relative in sources:
        lines.extend(read_ignore_file(root / relative))
    return parse_ignore_lines(lines)


def build_rule_set(root: Path, settings: AppSettings) -> IgnoreRuleSet:
    """
    Tap hop IgnoreRuleSet tu settings + ignore files duoi root.

    Ignore files chi duoc doc khi source tuong ung dang bat.
    """
    default_exclusions = frozenset(settings.get_default_exclusions() | BUILTIN_EXCLUSIONS)

    gitignore_patterns: List[StructuredPattern] = []
    if settings.respect_gitignore:
        gitignore_patterns = load_source_patterns(root, GITIGNORE_SOURCES)

    dotignore_patterns: List[StructuredPattern] = []
    if settings.respect_dotignore:
        dotignore_patterns = load_source_patterns(root, DOTIGNORE_SOURCES)

    return IgnoreRuleSet(
        default_exclusions=default_exclusions,
        simple_patterns=tuple(settings.get_custom_patterns_list()),
        gitignore_patterns=tuple(gitignore_patterns),
        dotignore_patterns=tuple(dotignore_patterns),
        show_hidden_files=settings.show_hidden_files,
        respect_gitignore=settings.respect_gitignore,
        respect_dotignore=settings.respect_dotignore,
    )


def build_ignore_engine(root: Path, settings: Optional[AppSettings] = None) -> IgnoreEngine:
    """
    Tao IgnoreEngine cho root tu settings (default settings neu None).

    Goi lai moi lan full rescan de doc lai ignore files da thay doi.
    """
    if settings is None:
        settings = AppSettings()
    root = Path(root)
    rules = build_rule_set(root, settings)
    log_debug(
        f"[IgnoreEngine] {root}: {len(rules.gitignore_patterns)} gitignore, "
        f"{len(rules.dotignore_patterns)} dotignore, "
        f"{len(rules.simple_patterns)} custom patterns"
    )
    return IgnoreEngine(root, rules)


def clear_cache() -> None:
    """Xoa cache noi dung ignore files."""
    _ignore_file_cache.clear()
