"""Customer callback request queue and retry orchestrator."""
