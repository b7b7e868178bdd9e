"""
Azure Pipelines logging commands.

Variables and results are reported to the agent by printing ``##vso[...]``
commands to stdout. Task variables set in the main step are handed back to
the post step as ``VSTS_TASKVARIABLE_<NAME>`` environment variables.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Mapping


def _escape_data(value: str) -> str:
    return value.replace("%", "%AZP25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace("]", "%5D").replace(";", "%3B")


def command(name: str, properties: Mapping[str, str] | None = None, message: str = "") -> str:
    props = "".join(f"{key}={_escape_property(str(value))};" for key, value in (properties or {}).items())
    suffix = f" {props}" if props else ""
    return f"##vso[{name}{suffix}]{_escape_data(message)}"


def emit(line: str) -> None:
    print(line, flush=True)


def set_variable(name: str, value: str, secret: bool = False, output: bool = False) -> None:
    properties = {"variable": name, "issecret": str(secret).lower()}
    if output:
        properties["isoutput"] = "true"
    emit(command("task.setvariable", properties, value))


def set_task_variable(name: str, value: str, secret: bool = False) -> None:
    emit(command("task.settaskvariable", {"variable": name, "issecret": str(secret).lower()}, value))


def get_task_variable(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    env = os.environ if environ is None else environ
    value = env.get(f"VSTS_TASKVARIABLE_{name.replace('.', '_').replace(' ', '_').upper()}")
    return value if value else None


def set_result_failed(message: str) -> None:
    emit(command("task.complete", {"result": "Failed"}, message))


@contextmanager
def group(title: str, logger: logging.Logger) -> Iterator[None]:
    logger.info(f"##[group]{title}")
    try:
        yield
    finally:
        logger.info("##[endgroup]")
