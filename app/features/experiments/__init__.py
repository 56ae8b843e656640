"""
Career experiments feature package.

Experiments are small, time-boxed trials a user runs to test an insight
(e.g. "lead the next sprint retro"). Progress is derived from milestones
in the domain layer so every caller computes it the same way.
"""
