"""DawnDream: sleep-talk recorder and sunrise wake-up simulation."""

__version__ = "0.1.0"
