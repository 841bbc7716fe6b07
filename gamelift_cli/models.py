from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .cli_shared import ControlPlaneError


def _epoch_seconds(raw: Any) -> float:
    # boto3 hands back datetimes; the aws CLI JSON output uses epoch floats.
    if raw is None or raw == "":
        return 0.0
    if isinstance(raw, datetime):
        return raw.timestamp()
    try:
        return float(raw)
    except (TypeError, ValueError) as e:
        raise ControlPlaneError(f"malformed timestamp in GameLift response: {raw!r}") from e


def _str(item: dict[str, Any], key: str) -> str:
    return str(item.get(key) or "").strip()


def _int(item: dict[str, Any], key: str) -> int:
    raw = item.get(key)
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ControlPlaneError(f"malformed {key} in GameLift response: {raw!r}") from e


def _str_list(item: dict[str, Any], key: str) -> tuple[str, ...]:
    raw = item.get(key) or []
    if not isinstance(raw, list):
        return ()
    return tuple(str(v) for v in raw if str(v or "").strip())


def _require_mapping(item: Any, *, kind: str) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ControlPlaneError(f"malformed {kind} in GameLift response: expected object")
    return item


def _require_id(item: dict[str, Any], key: str, *, kind: str) -> str:
    v = _str(item, key)
    if not v:
        raise ControlPlaneError(f"malformed {kind} in GameLift response: missing {key}")
    return v


def format_timestamp(ts: float) -> str:
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class Fleet:
    fleet_id: str
    fleet_arn: str = ""
    name: str = ""
    fleet_type: str = ""
    instance_type: str = ""
    operating_system: str = ""
    status: str = ""
    creation_time: float = 0.0
    log_paths: tuple[str, ...] = ()
    new_game_session_protection_policy: str = ""
    metric_groups: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, item: Any) -> "Fleet":
        item = _require_mapping(item, kind="fleet attributes")
        return cls(
            fleet_id=_require_id(item, "FleetId", kind="fleet attributes"),
            fleet_arn=_str(item, "FleetArn"),
            name=_str(item, "Name"),
            fleet_type=_str(item, "FleetType"),
            instance_type=_str(item, "InstanceType"),
            operating_system=_str(item, "OperatingSystem"),
            status=_str(item, "Status"),
            creation_time=_epoch_seconds(item.get("CreationTime")),
            log_paths=_str_list(item, "LogPaths"),
            new_game_session_protection_policy=_str(item, "NewGameSessionProtectionPolicy"),
            metric_groups=_str_list(item, "MetricGroups"),
        )


@dataclass(frozen=True)
class GameProperty:
    key: str
    value: str


@dataclass(frozen=True)
class GameSession:
    game_session_id: str
    fleet_id: str = ""
    name: str = ""
    status: str = ""
    creation_time: float = 0.0
    termination_time: float = 0.0
    current_player_session_count: int = 0
    maximum_player_session_count: int = 0
    game_properties: tuple[GameProperty, ...] = ()
    ip_address: str = ""
    port: int = 0
    player_session_creation_policy: str = ""

    @property
    def properties(self) -> dict[str, str]:
        return {p.key: p.value for p in self.game_properties}

    @classmethod
    def from_api(cls, item: Any) -> "GameSession":
        item = _require_mapping(item, kind="game session")
        props = []
        for p in item.get("GameProperties") or []:
            if isinstance(p, dict):
                props.append(GameProperty(key=_str(p, "Key"), value=str(p.get("Value") or "")))
        return cls(
            game_session_id=_require_id(item, "GameSessionId", kind="game session"),
            fleet_id=_str(item, "FleetId"),
            name=_str(item, "Name"),
            status=_str(item, "Status").upper(),
            creation_time=_epoch_seconds(item.get("CreationTime")),
            termination_time=_epoch_seconds(item.get("TerminationTime")),
            current_player_session_count=_int(item, "CurrentPlayerSessionCount"),
            maximum_player_session_count=_int(item, "MaximumPlayerSessionCount"),
            game_properties=tuple(props),
            ip_address=_str(item, "IpAddress"),
            port=_int(item, "Port"),
            player_session_creation_policy=_str(item, "PlayerSessionCreationPolicy"),
        )


@dataclass(frozen=True)
class FleetInstance:
    fleet_id: str
    instance_id: str
    ip_address: str = ""
    operating_system: str = ""
    instance_type: str = ""
    status: str = ""
    creation_time: float = 0.0

    @classmethod
    def from_api(cls, item: Any) -> "FleetInstance":
        item = _require_mapping(item, kind="instance")
        return cls(
            fleet_id=_str(item, "FleetId"),
            instance_id=_require_id(item, "InstanceId", kind="instance"),
            ip_address=_str(item, "IpAddress"),
            operating_system=_str(item, "OperatingSystem"),
            instance_type=_str(item, "Type"),
            status=_str(item, "Status"),
            creation_time=_epoch_seconds(item.get("CreationTime")),
        )


@dataclass(frozen=True)
class InstanceCredentials:
    username: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class InstanceAccess:
    fleet_id: str
    instance_id: str
    ip_address: str
    operating_system: str
    credentials: InstanceCredentials

    @classmethod
    def from_api(cls, resp: Any) -> "InstanceAccess":
        resp = _require_mapping(resp, kind="instance access response")
        item = _require_mapping(resp.get("InstanceAccess"), kind="instance access")
        creds = _require_mapping(item.get("Credentials"), kind="instance access credentials")
        username = _require_id(creds, "UserName", kind="instance access credentials")
        secret = str(creds.get("Secret") or "")
        if not secret.strip():
            raise ControlPlaneError("malformed instance access credentials in GameLift response: missing Secret")
        return cls(
            fleet_id=_str(item, "FleetId"),
            instance_id=_str(item, "InstanceId"),
            ip_address=_require_id(item, "IpAddress", kind="instance access"),
            operating_system=_str(item, "OperatingSystem"),
            credentials=InstanceCredentials(username=username, secret=secret),
        )


@dataclass(frozen=True)
class RemoteAccessConfig:
    """A single ssh_config Host block pointing at one fleet instance."""

    host_alias: str
    host_name: str
    user: str
    identity_file: str
    config_path: str = ""
