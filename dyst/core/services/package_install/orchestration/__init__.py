"""L5 Orchestration — package lifecycle coordinators."""
