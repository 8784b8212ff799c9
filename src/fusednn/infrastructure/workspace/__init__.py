from ._pool import WorkspacePool, default_workspace_pool, free_workspace

__all__ = [
    WorkspacePool.__name__,
    default_workspace_pool.__name__,
    free_workspace.__name__,
]
