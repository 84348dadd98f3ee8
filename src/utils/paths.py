from pathlib import Path

from src.config import CONFIG_FILE


def get_project_root(start: Path | None = None) -> Path:
    """Get the project root directory.

    Walks up from the working directory to find the project root,
    identified by the presence of chartrelease.yaml.

    Returns:
        Path to the project root directory, or the working directory if
        no parent contains a config file
    """
    current = (start or Path.cwd()).resolve()

    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILE).exists():
            return parent

    return current
