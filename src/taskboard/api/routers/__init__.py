"""HTTP routers: ``auth`` (register/login/me) and ``tasks``."""
