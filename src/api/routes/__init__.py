"""One router per pipeline stage."""
