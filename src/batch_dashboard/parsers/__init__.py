"""Parsers for scheduler command output.

Each module turns the raw stdout of one scheduler family's commands into
typed records. Parsers do no I/O and never see a command line.
"""
