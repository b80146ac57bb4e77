"""Migration files and statement splitting shared by scripts/migrate.py."""
from pathlib import Path

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


def migration_files(versions_dir: Path = VERSIONS_DIR) -> list[Path]:
    """SQL migrations in apply order (file names start with a zero-padded version)."""
    return sorted(versions_dir.glob("*.sql"))


def split_statements(sql: str) -> list[str]:
    # Remove single-line comments and split by semicolon
    lines = [line for line in sql.split("\n") if not line.strip().startswith("--")]
    clean = "\n".join(lines)
    return [stmt.strip() + ";" for stmt in clean.split(";") if stmt.strip()]
