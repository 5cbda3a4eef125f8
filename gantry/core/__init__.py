"""Gantry build execution engine.

Modules
-------
source_sync
    ``SourceSync`` brings a local checkout to an exact commit.
step_runner
    ``StepRunner`` spawns one shell step and streams its output.
orchestrator
    ``BuildOrchestrator`` runs the instruction with stop-on-first-failure.
progress
    ``ProgressChannel`` relays ``BuildUpdate`` events to a listener.
worker
    ``BuildWorker`` runs sync + orchestration on a dedicated thread.
"""
