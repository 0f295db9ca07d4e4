"""todo-expand: rewrite informal TODO comments into structured task briefs."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("todo-expand")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
