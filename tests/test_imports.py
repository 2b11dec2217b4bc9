def test_imports():
    """
    @brief
    Verifies that all core Alchemist modules are importable.

    @details
    Ensures package structure integrity and confirms that the schema,
    loader, validator and metrics packages resolve without import errors.
    """
    import alchemist
    import alchemist.dataloader.config_loader
    import alchemist.dataloader.workspace_loader
    import alchemist.metrics.quality
    import alchemist.validator

    # --- Assert ---
    assert alchemist.__version__
    assert callable(alchemist.validator.validate)
