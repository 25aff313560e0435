"""HTTP routers, mounted under ``settings.api_prefix`` by ``carebook.main``."""
