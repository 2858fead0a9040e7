"""Batch Dashboard.

Read-only web dashboard for HPC batch-scheduler clusters (PBS/Torque, IBM
LSF and Lava). Runs the scheduler's status commands, normalizes their output
into nodes and jobs, and renders cluster utilization and job lists.
"""

__version__ = "0.1.0"
