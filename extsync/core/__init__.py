"""Watch session core: lifecycle, dispatch, output store, incremental contexts."""
