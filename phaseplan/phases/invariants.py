"""Scheduling invariants shared by the evaluator, corrector and scheduler.

Every rule, evaluator and scheduler must import from here.
"""

# A finish-to-start edge always leaves at least this many days between the
# predecessor's last day and the successor's first day, on both sides of the edge.
MIN_FINISH_TO_START_GAP_DAYS = 1

# Lag applied when a dependency does not specify one
DEFAULT_LAG_DAYS = 0

# Shifting a phase never produces a range shorter than this
MIN_PHASE_DURATION_DAYS = 1
