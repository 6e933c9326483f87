"""
Services package - business logic and integrations

Pipeline (generation flow):
    - pipeline/script_generation: script and social metadata
    - pipeline/audio: voice-over synthesis
    - pipeline/video: polling and duration extension
    - pipeline/assembly: subtitles and export mux
    - pipeline/orchestrator.py, pipeline/batch.py: sequencing

Infrastructure (technical concerns):
    - infrastructure/llm: Gemini integration
    - infrastructure/parsing: JSON recovery
    - infrastructure/resilience: retry/backoff
    - infrastructure/orchestration: job management and cancellation
"""
