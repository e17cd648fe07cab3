"""Daily quiz selection, session state machine, scoring and streaks."""
