import os
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.dictconfig import DictConfig

load_dotenv()
CONFIG_PATH = Path(os.getenv("CONFIG_PATH", "config"))


def merge_configs(config_paths: List[Union[str, Path]]) -> DictConfig:
    """
    Merge multiple YAML configuration files with precedence. Later configs override earlier ones. Useful for applying overrides to base configs.

    Args:
        config_paths: List of paths to YAML config files. Later configs take precedence.

    Returns:
        DictConfig: Merged configuration object

    Raises:
        FileNotFoundError: If any config file doesn't exist

    Example:
        >>> config = merge_configs(["config/pipeline.yaml", "config/local.yaml"])
        >>> orchestrator = build_orchestrator(config)
    """
    if not config_paths:
        raise ValueError("config_paths is empty!")

    merged = OmegaConf.load(config_paths[0])

    for config_path in config_paths[1:]:
        config = OmegaConf.load(config_path)
        merged = OmegaConf.unsafe_merge(merged, config)

    return merged


def load_pipeline_config(overrides: Optional[List[Union[str, Path]]] = None) -> DictConfig:
    """
    Load the pipeline config from CONFIG_PATH, applying optional override files on top.

    Args:
        overrides: Extra YAML files merged over config/pipeline.yaml, in order

    Returns:
        DictConfig with the hh, rate_limit, retry, token, pipeline and cache sections
    """
    return merge_configs([CONFIG_PATH / "pipeline.yaml", *(overrides or [])])
