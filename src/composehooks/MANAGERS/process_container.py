# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
A container handle backed by a native process and a directory on the host.

The directory plays the role of the container filesystem: container paths
such as /data/seed.txt resolve below it, the service process runs inside it,
and exports archive it.
"""
import logging
import os
import shlex
import shutil
import subprocess
import tarfile
from typing import Dict, List, Optional, Tuple

import psutil
from dotenv import dotenv_values

from ..errors import ComposeHooksError
from ..MODELS.container_handle import ExecutionResult
from ..MODELS.service_definition import ServiceDefinition
from ..UTILS.port_finder import parse_port_spec
from .container_service import ContainerService

logger = logging.getLogger(__name__)

LOCALHOST = "127.0.0.1"


class ProcessContainer(ContainerService):
    """
    Runs one compose service as a local process rooted in its own directory.
    """

    def __init__(
        self,
        service_def: ServiceDefinition,
        root_dir: str,
        ports: Optional[Dict[int, int]] = None,
        base_dir: str = ".",
        exec_timeout: Optional[float] = None,
        log_file: Optional[str] = None,
    ):
        """
        Initializes the container.

        Args:
            service_def: Definition of the service.
            root_dir: Host directory used as the container filesystem.
            ports: Allocated {container_port: host_port} mappings.
            base_dir: Directory relative env_file paths are resolved against.
            exec_timeout: Seconds an executed command may run; None waits forever.
            log_file: Where stdout/stderr of the service go.
        """
        super().__init__(service_def.name)
        self.service_def = service_def
        self.root_dir = os.path.abspath(root_dir)
        self.ports = dict(ports or {})
        self.base_dir = base_dir
        self.exec_timeout = exec_timeout
        self.log_file = log_file or os.path.join(
            os.path.dirname(self.root_dir), f"{self.name}.log"
        )
        self.process: Optional[subprocess.Popen] = None
        self._log_handle = None
        self._env: Dict[str, str] = {}

    # Lifecycle, driven by the engine

    def create(self) -> None:
        os.makedirs(self.root_dir, exist_ok=True)
        os.makedirs(self.working_dir, exist_ok=True)

    @property
    def working_dir(self) -> str:
        if self.service_def.working_dir:
            return self.resolve_path(self.service_def.working_dir)
        return self.root_dir

    def environment(self, extra_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Merges the host environment, env files (later files win) and the
        explicit environment, in that order of precedence.
        """
        env = os.environ.copy()
        for env_file in self.service_def.environment_files:
            path = os.path.join(self.base_dir, env_file)
            if os.path.exists(path):
                env.update({k: v for k, v in dotenv_values(path).items() if v is not None})
        env.update(self.service_def.environment)
        if extra_env:
            env.update(extra_env)
        return env

    def start(self, extra_env: Optional[Dict[str, str]] = None) -> None:
        """
        Starts the service process.

        :param extra_env: Additional environment variables (e.g., service discovery).
        :raises ComposeHooksError: If the command cannot be launched.
        """
        self._env = self.environment(extra_env)
        command = self.service_def.full_command()
        if not command:
            logger.info("[%s] No command specified, nothing to run.", self.name)
            return
        if self.is_running():
            return

        os.makedirs(os.path.dirname(self.log_file), exist_ok=True)
        self._log_handle = open(self.log_file, "a")
        logger.info("[%s] Starting command: %s", self.name, " ".join(command))
        try:
            self.process = subprocess.Popen(
                command,
                env=self._env,
                cwd=self.working_dir,
                stdout=self._log_handle,
                stderr=self._log_handle,
                text=True,
                shell=False,
            )
        except OSError as e:
            self._log_handle.close()
            self._log_handle = None
            raise ComposeHooksError(f"Cannot start service {self.name}: {e}") from e

    def stop(self, timeout: float = 10) -> None:
        """
        Sends SIGTERM, followed by SIGKILL if the process does not exit in time.
        """
        if self.process and self.process.poll() is None:
            logger.info("[%s] Stopping process...", self.name)
            self.process.terminate()
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("[%s] Process did not terminate, killing...", self.name)
                self.process.kill()
                self.process.wait()
        if self._log_handle:
            self._log_handle.close()
            self._log_handle = None

    def destroy(self) -> None:
        """Removes the container filesystem."""
        shutil.rmtree(self.root_dir, ignore_errors=True)

    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def status(self) -> str:
        """
        :return: 'running', 'created' or 'exited(<code>)'.
        """
        if self.is_running():
            return "running"
        if self.process is None:
            return "created"
        return f"exited({self.process.poll()})"

    # Paths

    def resolve_path(self, container_path: str) -> str:
        """
        Maps a container path onto the host directory backing the container.

        :raises ComposeHooksError: If the path escapes the container root.
        """
        candidate = os.path.abspath(os.path.join(self.root_dir, container_path.lstrip("/\\")))
        if candidate != self.root_dir and not candidate.startswith(self.root_dir + os.sep):
            raise ComposeHooksError(f"{container_path} is outside of container {self.name}")
        return candidate

    @staticmethod
    def _copy(source: str, target: str) -> None:
        if not os.path.exists(source):
            raise FileNotFoundError(source)
        if os.path.isdir(target):
            target = os.path.join(target, os.path.basename(source.rstrip("/\\")))
        parent = os.path.dirname(target)
        if parent:
            os.makedirs(parent, exist_ok=True)
        if os.path.isdir(source):
            shutil.copytree(source, target, dirs_exist_ok=True)
        else:
            shutil.copy2(source, target)

    # ContainerService

    def copy_to(self, container_path: str, host_path: str) -> None:
        logger.info("[%s] Copy %s -> %s", self.name, host_path, container_path)
        self._copy(host_path, self.resolve_path(container_path))

    def copy_from(self, container_path: str, host_path: str) -> None:
        logger.info("[%s] Copy %s -> %s", self.name, container_path, host_path)
        self._copy(self.resolve_path(container_path), host_path)

    def host_endpoint(self, port: str) -> Optional[Tuple[str, int]]:
        number, _ = parse_port_spec(port)
        if not self.is_running():
            return None
        # Unmapped ports are bound directly on the host by the process
        return LOCALHOST, self.ports.get(number) or number

    def process_names(self) -> List[str]:
        if not self.is_running():
            return []
        names: List[str] = []
        try:
            root = psutil.Process(self.process.pid)
            procs = [root] + root.children(recursive=True)
        except psutil.NoSuchProcess:
            return []
        for proc in procs:
            try:
                names.append(proc.name())
                cmdline = proc.cmdline()
                if cmdline:
                    names.append(" ".join(cmdline))
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return names

    def execute(self, command: str) -> ExecutionResult:
        """
        Runs a command line in the container's working directory and environment.
        The line is split shell-style but never run through a shell.
        """
        args = shlex.split(command)
        if not args:
            return ExecutionResult(success=False, error="Empty command")
        env = self._env or self.environment()
        logger.info("[%s] Execute: %s", self.name, command)
        try:
            result = subprocess.run(
                args,
                cwd=self.working_dir,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.exec_timeout,
            )
        except FileNotFoundError as e:
            return ExecutionResult(success=False, exit_code=127, error=str(e))
        except OSError as e:
            return ExecutionResult(success=False, exit_code=126, error=str(e))
        except subprocess.TimeoutExpired:
            return ExecutionResult(success=False, error=f"Timed out after {self.exec_timeout}s")

        return ExecutionResult(
            success=result.returncode == 0,
            exit_code=result.returncode,
            output=result.stdout or "",
            error=(result.stderr or "").strip() or (
                "" if result.returncode == 0 else f"Exit code: {result.returncode}"
            ),
        )

    def export(self, host_path: str, explode: bool = False) -> None:
        logger.info("[%s] Export to %s (explode=%s)", self.name, host_path, explode)
        if explode:
            shutil.copytree(self.root_dir, host_path, dirs_exist_ok=True)
            return
        parent = os.path.dirname(os.path.abspath(host_path))
        os.makedirs(parent, exist_ok=True)
        with tarfile.open(host_path, "w") as archive:
            archive.add(self.root_dir, arcname=".")
