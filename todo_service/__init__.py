"""Todo-list service: signup/signin, JWT auth and per-user todo mutations."""

__version__ = "0.1.0"
