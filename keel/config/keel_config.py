import os
import platform
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Union

import networkx as nx
import tomli

from keel.core import get_logger
from keel.utils import change_cwd

from .data_model import (
    ConfirmationConfig,
    GeneralConfig,
    RunnerConfig,
    SubmissionConfig,
    TopLevelConfig,
)

logger = get_logger(__name__)


class UnsupportedPlatformError(Exception):
    """
    The current platform is not supported. Supported platforms are: Linux, macOS, Windows.
    """


def _global_config_path() -> Path:
    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "keel" / "config.toml"

    system = platform.system()
    if system in {"Linux", "Darwin"}:
        return Path.home() / ".config" / "keel" / "config.toml"
    if system == "Windows":
        return Path(os.environ["LOCALAPPDATA"]) / "keel" / "config.toml"
    raise UnsupportedPlatformError(f"Platform `{system}` is not supported.")


def _merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


class KeelConfig:
    """
    Options of the scenario runner: the RPC endpoint, confirmation tracking, submission and failure policy.

    Options are layered. Defaults are overridden by the global `config.toml`, then by the project's `keel.toml`,
    then by command line options. A file may pull in further files with the `subconfigs` key; those override
    the file that includes them.
    """

    _project_root_path: Path
    _local_config_path: Path
    _global_config_path: Path
    _loaded_files: FrozenSet[Path]
    _raw: Dict[str, Any]
    _config: TopLevelConfig

    def __init__(
        self,
        *_,
        local_config_path: Optional[Union[str, Path]] = None,
        project_root_path: Optional[Union[str, Path]] = None,
    ):
        """
        If `project_root_path` is not provided, the current working directory is used.
        If `local_config_path` is not provided, `keel.toml` in the project root directory is used.
        """
        self._global_config_path = _global_config_path()
        self._project_root_path = Path(project_root_path or Path.cwd()).resolve()
        if not self._project_root_path.is_dir():
            raise ValueError(
                f"Project root path '{self._project_root_path}' is not a directory."
            )
        self._local_config_path = (
            Path(local_config_path).resolve()
            if local_config_path is not None
            else self._project_root_path / "keel.toml"
        )
        self._set({})

    def __str__(self) -> str:
        """
        Returns:
            JSON representation of the options set by config files or overrides.
        """
        return self._config.model_dump_json(by_alias=True, exclude_unset=True)

    def _validate(self, raw: Dict[str, Any]) -> TopLevelConfig:
        # relative subconfig paths resolve against the project root
        with change_cwd(self._project_root_path):
            return TopLevelConfig.model_validate(raw)

    def _set(self, raw: Dict[str, Any], loaded_files: FrozenSet[Path] = frozenset()) -> None:
        self._config = self._validate(raw)
        self._raw = self._config.model_dump(by_alias=True, exclude_unset=True)
        self._loaded_files = loaded_files

    @classmethod
    def fromdict(
        cls,
        config_dict: Dict[str, Any],
        *,
        project_root_path: Optional[Union[str, Path]] = None,
    ) -> "KeelConfig":
        """
        Returns:
            Config holding `config_dict` on top of the defaults. No files are loaded.
        """
        instance = cls(project_root_path=project_root_path)
        instance._set(config_dict)
        return instance

    def todict(self) -> Dict[str, Any]:
        """
        Returns:
            Options set by config files or overrides, without defaults.
        """
        return deepcopy(self._raw)

    def load_configs(self) -> None:
        """
        Reset to the defaults and load the global config file followed by the project config file.
        """
        self._set({})
        self.load(self.global_config_path)
        self.load(self.local_config_path)

    def load(self, path: Path) -> None:
        """
        Load `path` and its subconfigs over the current options. Nothing changes if any of the files is invalid.

        Raises:
            ValueError: subconfigs include each other.
            pydantic.ValidationError: a file holds an unknown option or a value of the wrong type.
        """
        graph = nx.DiGraph()
        raw = deepcopy(self._raw)
        self._load_file(None, path.resolve(), raw, graph)
        self._set(raw, self._loaded_files | frozenset(graph.nodes))

    def _load_file(
        self, parent: Optional[Path], path: Path, raw: Dict[str, Any], graph: nx.DiGraph
    ) -> None:
        if not path.is_file():
            if parent is None:
                logger.info(f"Config file '{path}' does not exist.")
            else:
                logger.warning(f"Config file '{path}' included from '{parent}' does not exist.")
            return

        graph.add_node(path)
        if parent is not None:
            graph.add_edge(parent, path)
        if not nx.is_directed_acyclic_graph(graph):
            cycle = " -> ".join(str(p) for p, _ in nx.find_cycle(graph, path))
            raise ValueError(f"Config files include each other: {cycle} -> {path}")

        with path.open("rb") as f:
            loaded = tomli.load(f)
        # subconfig paths are relative to the file naming them
        with change_cwd(path.parent):
            parsed = TopLevelConfig.model_validate(loaded)
        _merge(raw, parsed.model_dump(by_alias=True, exclude_unset=True))
        logger.debug(f"Loaded config file '{path}'")

        for subconfig in parsed.subconfigs:
            self._load_file(path, subconfig, raw, graph)

    def set_rpc_url(self, url: str) -> None:
        """
        Override the RPC endpoint of every loaded config file.
        """
        raw = deepcopy(self._raw)
        _merge(raw, {"general": {"rpc_url": url}})
        self._set(raw, self._loaded_files)

    @property
    def loaded_files(self) -> FrozenSet[Path]:
        """
        Returns:
            All loaded config files, including files loaded through the `subconfigs` key.
        """
        return self._loaded_files

    @property
    def local_config_path(self) -> Path:
        return self._local_config_path

    @property
    def global_config_path(self) -> Path:
        return self._global_config_path

    @property
    def project_root_path(self) -> Path:
        return self._project_root_path

    @property
    def general(self) -> GeneralConfig:
        return self._config.general

    @property
    def confirmation(self) -> ConfirmationConfig:
        return self._config.confirmation

    @property
    def submission(self) -> SubmissionConfig:
        return self._config.submission

    @property
    def runner(self) -> RunnerConfig:
        return self._config.runner
