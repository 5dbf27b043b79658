from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # type: ignore[import-untyped]


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class ImportConfig:
    batch_size: int = 100
    max_workers: int = 4
    header_rows: int = 1
    sheet_name: Union[int, str] = 0


@dataclass
class ValidationConfig:
    email_check_deliverability: bool = False


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class PipelineConfig:
    inputs: Dict[str, Optional[str]]
    outputs: OutputsConfig
    importing: ImportConfig
    validation: ValidationConfig
    logging: LoggingConfig
    columns: Dict[str, int] = field(default_factory=dict)


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _sheet_name(value: Any) -> Union[int, str]:
    # Sheet indexes arrive as text from the command line.
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {}) or {}
    outputs_cfg = config_data.get("outputs", {}) or {}
    import_cfg = config_data.get("import", {}) or {}
    validation_cfg = config_data.get("validation", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}
    columns_cfg = config_data.get("columns", {}) or {}

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    importing = ImportConfig(
        batch_size=int(
            _first_set(getattr(args, "batch_size", None), import_cfg.get("batch_size"), 100)
        ),
        max_workers=int(
            _first_set(getattr(args, "max_workers", None), import_cfg.get("max_workers"), 4)
        ),
        header_rows=int(
            _first_set(getattr(args, "header_rows", None), import_cfg.get("header_rows"), 1)
        ),
        sheet_name=_sheet_name(
            _first_set(getattr(args, "sheet_name", None), import_cfg.get("sheet_name"), 0)
        ),
    )
    if importing.batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {importing.batch_size}")
    if importing.max_workers < 1:
        raise ValueError(f"max_workers must be positive, got {importing.max_workers}")

    validation = ValidationConfig(
        email_check_deliverability=bool(
            _first_set(
                getattr(args, "email_check_deliverability", None),
                validation_cfg.get("email_check_deliverability"),
                False,
            )
        ),
    )

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(level=effective_level)

    resolved_inputs = {
        "rows_file": getattr(args, "rows_file", None) or inputs.get("rows_file"),
    }

    return PipelineConfig(
        inputs=resolved_inputs,
        outputs=outputs,
        importing=importing,
        validation=validation,
        logging=logging_config,
        columns={str(key): int(value) for key, value in columns_cfg.items()},
    )
