"""davy: disposable Docker sandboxes for AI coding-agent CLIs."""
