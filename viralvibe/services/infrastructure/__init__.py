"""
Infrastructure - technical concerns shared by the pipeline

    - llm: Gemini client for script, speech and video models
    - parsing: JSON recovery for model responses
    - resilience: retry and backoff for remote calls
    - orchestration: jobs, cancellation and lifecycle
"""
