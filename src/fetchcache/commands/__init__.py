"""Built-in CLI sub-commands: ``get``, ``cache``, and ``config``."""
