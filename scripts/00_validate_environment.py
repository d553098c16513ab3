import sys

from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from mi_walkthrough.config import LOGS_DIR, NHANES_FILE  # noqa: E402
from mi_walkthrough.utils.logging import package_versions, run_metadata, write_json  # noqa: E402


def main() -> None:
    versions = package_versions()
    info = run_metadata(nhanes_file=str(NHANES_FILE), nhanes_file_exists=NHANES_FILE.exists())
    missing = sorted(pkg for pkg, version in versions.items() if version is None)
    info["missing_packages"] = missing
    write_json(LOGS_DIR / "environment_check.json", info)
    print(f"Wrote {LOGS_DIR / 'environment_check.json'}")
    if missing:
        raise SystemExit(f"Missing packages: {missing}")


if __name__ == "__main__":
    main()
