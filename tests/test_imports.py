def test_imports():
    """
    @brief
    Verifies that all core Alchemist modules are importable.

    @details
    Ensures package structure integrity and confirms that alchemist,
    alchemist.dataloader, alchemist.validator, alchemist.report and
    alchemist.visualizer are accessible without import errors.
    """
    import alchemist
    import alchemist.dataloader
    import alchemist.report
    import alchemist.validator
    import alchemist.visualizer

    # --- Assert ---
    # Confirm that modules were successfully imported and resolved
    assert all([alchemist, alchemist.dataloader, alchemist.report, alchemist.validator, alchemist.visualizer])
    assert alchemist.__version__
