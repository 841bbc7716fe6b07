import os

import pytest

from gamelift_cli.cli_shared import _apply_global_env
from gamelift_cli.control_plane import build_control_plane


INTEGRATION_FLEET_ENV = "GAMELIFT_CLI_INTEGRATION_FLEET_ID"


@pytest.fixture(scope="session")
def fleet_id() -> str:
    val = (os.environ.get(INTEGRATION_FLEET_ENV) or "").strip()
    if not val:
        pytest.skip(f"set {INTEGRATION_FLEET_ENV} (plus AWS_PROFILE/AWS_REGION) to run live GameLift tests")
    return val


@pytest.fixture(scope="session")
def control_plane(fleet_id):
    del fleet_id
    return build_control_plane(_apply_global_env())
