# src/atlas_provision/core/plan/runner.py
"""
Interface de execução do plano e runner local.

O executor do plano (Engine) nunca toca o sistema diretamente: cada
Action é delegada a um `ActionRunner`, que realiza a escrita de arquivo
ou a operação de serviço e sinaliza falha levantando exceção.

Implementações:
    - LocalRunner: escreve artifacts atomicamente sob um diretório raiz e
      delega operações de serviço a um ServiceManager
    - SystemctlServiceManager: ServiceManager baseado em `systemctl`
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union, runtime_checkable

from atlas_provision.core.state.store import atomic_write

from .types import Artifact


@runtime_checkable
class ActionRunner(Protocol):
    """
    Contrato de execução das Actions de um plano.

    Cada método deve ser idempotente para a mesma entrada e levantar
    exceção em caso de falha; o Engine converte a exceção em resultado
    FAILED e pula os dependentes.
    """

    def write_artifact(self, artifact: Artifact) -> None: ...

    def start_service(self, name: str) -> None: ...

    def restart_service(self, name: str) -> None: ...

    def stop_service(self, name: str) -> None: ...


@runtime_checkable
class ServiceManager(Protocol):
    def start(self, name: str) -> None: ...

    def restart(self, name: str) -> None: ...

    def stop(self, name: str) -> None: ...


class SystemctlServiceManager:
    """ServiceManager que invoca `systemctl <verb> <name>.service`."""

    def __init__(self, *, systemctl: str = "systemctl", timeout: Optional[float] = 90.0):
        self.systemctl = systemctl
        self.timeout = timeout

    def _unit(self, name: str) -> str:
        return name if "." in name else f"{name}.service"

    def _run(self, verb: str, name: str) -> None:
        cmd: List[str] = [self.systemctl, verb, self._unit(name)]
        subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=self.timeout)

    def start(self, name: str) -> None:
        self._run("start", name)

    def restart(self, name: str) -> None:
        self._run("restart", name)

    def stop(self, name: str) -> None:
        self._run("stop", name)


class LocalRunner:
    """Runner do host local: arquivos sob `root`, serviços via `services`."""

    def __init__(self, *, root: Union[str, Path], services: ServiceManager):
        self.root = Path(root)
        self.services = services

    def target_path(self, artifact: Artifact) -> Path:
        rel = Path(artifact.path)
        parts: Sequence[str] = rel.parts[1:] if rel.is_absolute() else rel.parts
        if ".." in parts:
            raise ValueError(f"artifact path escapes target root: {artifact.path}")
        return self.root.joinpath(*parts)

    def write_artifact(self, artifact: Artifact) -> None:
        atomic_write(self.target_path(artifact), artifact.content, mode=artifact.mode)

    def start_service(self, name: str) -> None:
        self.services.start(name)

    def restart_service(self, name: str) -> None:
        self.services.restart(name)

    def stop_service(self, name: str) -> None:
        self.services.stop(name)
