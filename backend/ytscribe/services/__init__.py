"""Services for transcript orchestration: stages, providers, payments."""
