"""
Configuration subsystem for Tamebot.

- config.Config: static settings from the environment (python-dotenv)
- manager.ConfigManager: dot-notation balance values from YAML (PyYAML)

Import the submodules directly; the logging subsystem depends on
`config.Config`, so this package keeps no eager imports.
"""
