"""ops-plans: lifecycle tracking for operational plans."""
