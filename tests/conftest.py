import sys
import warnings
from pathlib import Path

# Ignore warnings from radio_relay.shared
warnings.filterwarnings("ignore", category=DeprecationWarning, module="radio_relay.shared.*")

# Ensure the project root is on sys.path so `radio_relay` resolves without an install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

# Import playback fixtures so they are available to all tests
from tests.fixtures.playback_fixtures import *  # noqa: E402, F403
