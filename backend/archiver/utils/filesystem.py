from pathlib import Path

from archiver.config import settings


def ensure_data_dirs(data_dir: Path | None = None) -> Path:
    path = data_dir or settings.data_dir
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize_filename(name: str) -> str:
    keep = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789._-")
    return "".join(c if c in keep else "_" for c in name)


def file_type_for(filename: str | None, content_type: str | None = None) -> str:
    """Lower-case extension of ``filename``, else the MIME subtype."""
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    if suffix:
        return suffix
    if content_type and "/" in content_type:
        return content_type.split("/", 1)[1].split(";")[0].strip().lower()
    return "bin"
