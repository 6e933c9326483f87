"""
Pipeline - the generation flow for one short-form video

    - script_generation: script, captions and social metadata
    - audio: voice-over synthesis
    - video: operation polling and duration extension
    - assembly: subtitles and the ffmpeg export mux
    - orchestrator: stage sequencing and status events
"""

from .orchestrator import PipelineOrchestrator
from .batch import BatchItemResult, BatchRunner, save_run_artifacts

__all__ = ["PipelineOrchestrator", "BatchItemResult", "BatchRunner", "save_run_artifacts"]
