"""Build pipeline core: content transform, templates, assets and orchestration."""
