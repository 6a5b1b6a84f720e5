import os
import subprocess
import sys

# Add the project root to sys.path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from gym_crm.config import DB_FILE  # noqa: E402
from gym_crm.database import initialize_database  # noqa: E402
from gym_crm.import_data import import_backend_export  # noqa: E402


def handle_backend_import(export_dir: str) -> None:
    """Loads a backend CSV export into the local database if a directory was given."""
    if not export_dir:
        return
    if not os.path.isdir(export_dir):
        print(f"Warning: export directory '{export_dir}' not found. Skipping import.")
        return
    counts = import_backend_export(export_dir, DB_FILE)
    print(f"Imported {counts['members']} members, {counts['transactions']} transactions, "
          f"{counts['check_ins']} check-ins from {export_dir}.")


def build_streamlit_command() -> list:
    streamlit_app_path = os.path.join(os.path.dirname(__file__), "streamlit_ui", "app.py")
    return [sys.executable, "-m", "streamlit", "run", streamlit_app_path]


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    print(f"Running with Python executable: {sys.executable}")

    initialize_database(DB_FILE)
    print(f"Database initialized at: {DB_FILE}")

    handle_backend_import(argv[0] if argv else os.environ.get("GYM_CRM_EXPORT_DIR", ""))

    command_to_run = build_streamlit_command()
    print(f"Running command: {' '.join(command_to_run)}")
    try:
        subprocess.run(command_to_run, cwd=project_root, check=True)
    except FileNotFoundError:
        print("Error: Streamlit command not found. Ensure Streamlit is installed and in PATH.")
        return 1
    except subprocess.CalledProcessError as e:
        print(f"Error running Streamlit app: {e}")
        return e.returncode
    return 0


if __name__ == "__main__":
    sys.exit(main())
