"""Job orchestration: per-job context and the report generator."""
