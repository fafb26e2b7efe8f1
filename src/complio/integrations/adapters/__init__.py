"""Adapter registry: maps provider category to lazy-import class path."""

AVAILABLE_ADAPTERS: dict[str, str] = {
    "google_workspace": "complio.integrations.adapters.google_workspace.GoogleWorkspaceAdapter",
    "microsoft_entra_id": "complio.integrations.adapters.microsoft_entra.MicrosoftEntraAdapter",
    "aws_config": "complio.integrations.adapters.aws_config.AwsConfigAdapter",
}


def import_adapter(dotted_path: str):
    """Import an adapter class from its dotted module path."""
    import importlib

    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
