"""Script generation: metadata package prompt, request and validation."""

from .metadata import MetadataGenerator, build_script_metadata
from .prompts import build_metadata_prompt

__all__ = ["MetadataGenerator", "build_script_metadata", "build_metadata_prompt"]
