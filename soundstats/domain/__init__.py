"""SoundStats domain layer - pure business logic with no storage or network access."""
