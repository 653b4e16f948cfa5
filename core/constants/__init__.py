from core.constants.file_patterns import (
    BINARY_EXTENSIONS,
    BUILTIN_EXCLUSIONS,
    DEFAULT_EXCLUSION_CATEGORIES,
    DOTIGNORE_SOURCES,
    GITIGNORE_SOURCES,
    HIDDEN_FILE_MARKER,
    IGNORE_SOURCE_FILES,
)

__all__ = [
    "BINARY_EXTENSIONS",
    "BUILTIN_EXCLUSIONS",
    "DEFAULT_EXCLUSION_CATEGORIES",
    "DOTIGNORE_SOURCES",
    "GITIGNORE_SOURCES",
    "HIDDEN_FILE_MARKER",
    "IGNORE_SOURCE_FILES",
]
