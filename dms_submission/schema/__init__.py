from pathlib import Path

SCHEMA_PATH = Path(__file__).parent / "submission.tql"
