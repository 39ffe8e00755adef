"""
Real-time form analysis pipeline.

Processes a live stream of 33-point pose landmarks frame by frame:
    Stage 1: Landmark ingest (validation, confidence, history ring buffer)
    Stage 2: Form evaluation (joint angles → severity → rate-limited corrections)
    Stage 3: Phase detection & repetition counting
    Stage 4: Form quality scoring and feedback dispatch

Entry point: ``src.realtime.engine.FormEngine``.
"""
