from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping
import math
import yaml

from .pid import PIDGains


class ConfigurationError(ValueError):
    """Startup configuration is missing or invalid; the controller must not activate."""


@dataclass
class SolverConfig:
    damping: float = 0.2
    rcond: float = 1e-10
    position_tolerance: float = 0.01
    orientation_tolerance: float = 0.01


@dataclass
class ControllerConfig:
    # Robot
    robot_name: str
    model_xml_path: str
    joints: List[str]
    tip_body: str

    # Solver
    solver: SolverConfig = field(default_factory=SolverConfig)

    # Rates
    controller_hz: float = 500.0
    telemetry_hz: float = 50.0

    # Feedback, keyed by joint name
    gains: Dict[str, PIDGains] = field(default_factory=dict)


def _require(data: Mapping[str, Any], section: str, key: str) -> Any:
    try:
        return data[section][key]
    except (KeyError, TypeError):
        raise ConfigurationError(f"missing '{section}.{key}' in controller config") from None


def parse_gains(data: Mapping[str, Any], joints: List[str]) -> Dict[str, PIDGains]:
    """
    Read one PID gain set per joint from the 'gains' section.

    Gains are looked up under 'pid_<joint name>'; a joint without gains
    is a configuration error.
    """
    section = data.get("gains") or {}
    gains = {}
    for joint in joints:
        entry = section.get(f"pid_{joint}")
        if entry is None:
            raise ConfigurationError(f"no PID gains for joint '{joint}' (expected 'gains.pid_{joint}')")
        try:
            gains[joint] = PIDGains(
                p=float(entry.get("p", 0.0)),
                i=float(entry.get("i", 0.0)),
                d=float(entry.get("d", 0.0)),
                i_clamp=float(entry.get("i_clamp", math.inf)),
                antiwindup=bool(entry.get("antiwindup", False)),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid PID gains for joint '{joint}': {e}") from None
    return gains


def load_config_dict(data: Mapping[str, Any], project_root: Path = None) -> ControllerConfig:
    if not isinstance(data, Mapping):
        raise ConfigurationError("controller config must be a mapping")

    # Resolve ${PROJECT_ROOT} token in paths
    if project_root is None:
        project_root = Path(__file__).parent.parent.parent.parent  # Go to Repository root
    model_xml_path = str(_require(data, "robot", "model_xml_path"))
    model_xml_path = model_xml_path.replace("${PROJECT_ROOT}", str(project_root))

    joints = list(_require(data, "robot", "joints") or [])
    if not joints:
        raise ConfigurationError("kinematic chain is empty: 'robot.joints' lists no joints")

    solver_data = data.get("solver") or {}
    rates = data.get("rates") or {}

    solver = SolverConfig(
        damping=float(solver_data.get("damping", 0.2)),
        rcond=float(solver_data.get("rcond", 1e-10)),
        position_tolerance=float(solver_data.get("position_tolerance", 0.01)),
        orientation_tolerance=float(solver_data.get("orientation_tolerance", 0.01)),
    )
    if solver.damping < 0.0:
        raise ConfigurationError(f"solver.damping must be non-negative, got {solver.damping}")

    return ControllerConfig(
        robot_name=str(_require(data, "robot", "name")),
        model_xml_path=model_xml_path,
        joints=joints,
        tip_body=str(_require(data, "robot", "tip_body")),
        solver=solver,
        controller_hz=float(rates.get("controller_hz", 500.0)),
        telemetry_hz=float(rates.get("telemetry_hz", 50.0)),
        gains=parse_gains(data, joints),
    )


def load_config(path: str) -> ControllerConfig:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read controller config {path}: {e}") from None

    return load_config_dict(data)
