"""Configuration defaults, loading and validation for toolscope.

Main components:
- defaults: Built-in grouping limits
- loader.load_virtual_tools_config: YAML + environment configuration loading
- validator: Pydantic error formatting
"""
