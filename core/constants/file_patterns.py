"""
File Patterns Constants
Chua cac constants lien quan den file extensions, default exclusions va ignore files.
"""

# Danh sach binary extensions (check nhanh, khong can I/O)
BINARY_EXTENSIONS = frozenset({
    # Images
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".tif", ".webp",
    ".ico", ".heic", ".heif", ".avif", ".psd", ".icns", ".raw",
    # Videos
    ".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm", ".m4v",
    # Audio
    ".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a", ".opus",
    # Archives
    ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz", ".tgz", ".dmg", ".iso",
    # Executables / libraries
    ".exe", ".dll", ".so", ".dylib", ".app", ".deb", ".rpm", ".msi", ".apk",
    ".o", ".a", ".lib", ".obj", ".class", ".jar", ".pyc", ".pyo", ".wasm",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    # Databases
    ".db", ".sqlite", ".sqlite3",
})

# Default exclusions user co the bat/tat: setting name -> ten file/folder
DEFAULT_EXCLUSION_CATEGORIES: dict[str, str] = {
    "exclude_node_modules": "node_modules",
    "exclude_git": ".git",
    "exclude_build": "build",
    "exclude_dist": "dist",
    "exclude_next": ".next",
    "exclude_venv": ".venv",
    "exclude_ds_store": ".DS_Store",
    "exclude_derived_data": "DerivedData",
}

# Build/VCS artifacts luon bi exclude (khong toggle duoc)
BUILTIN_EXCLUSIONS: frozenset[str] = frozenset({
    ".hg",
    ".svn",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".tox",
    ".idea",
    ".vscode",
    ".gradle",
    "target",
    "coverage",
    ".nyc_output",
    ".turbo",
    ".parcel-cache",
    ".cache",
})

# Ky tu danh dau hidden file
HIDDEN_FILE_MARKER = "."

# Nguon gitignore-style (doc theo thu tu, gop thanh 1 list)
GITIGNORE_SOURCES: tuple[str, ...] = (".gitignore", ".git/info/exclude")

# Nguon dotignore-style
DOTIGNORE_SOURCES: tuple[str, ...] = (".ignore",)

# Moi ignore file cua 1 root (thay doi -> full rescan voi rules moi)
IGNORE_SOURCE_FILES: frozenset[str] = frozenset(GITIGNORE_SOURCES + DOTIGNORE_SOURCES)
