"""Gantry build monitor — terminal rendering of progress events.

Modules
-------
renderer
    ``ProgressRenderer`` turns ``BuildUpdate`` events and ``BuildResult``
    summaries into Rich renderables.
"""
