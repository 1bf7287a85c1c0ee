"""Docsync rich error messages.

Every error shown to the user says what went wrong and the exact action
that fixes it.

Usage:
    from docsync.cli.errors import err_empty_index
    console.print(err_empty_index())
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "voyage": "VOYAGE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or use the local model:  embedding.model: local/sentence-transformers/all-MiniLM-L6-v2"
    )


def err_config(message: str) -> str:
    return (
        f"[red]Error:[/] Invalid configuration.\n  {message}\n"
        "  Check docsync.yaml and ~/.docsync/config.yaml."
    )


def err_empty_index(storage_dir: str) -> str:
    """Search or status against a store with no documents."""
    return (
        f"[yellow]The knowledge base at '{storage_dir}' is empty.[/]\n"
        "  Run:  docsync sync"
    )


def err_embedding(message: str) -> str:
    return (
        f"[red]Error:[/] The embedding model could not be used.\n"
        f"  {message}\n"
        "  Check the embedding.model setting and your network connection."
    )


def err_invalid_type(value: str, allowed: list[str]) -> str:
    return (
        f"[red]Error:[/] Unknown chunk type '{value}'.\n"
        f"  Use one of: {', '.join(allowed)}"
    )


def err_no_pages(base_url: str) -> str:
    """Sync crawled nothing; the previous index is untouched."""
    return (
        f"[red]Error:[/] No pages could be crawled from '{base_url}'.\n"
        "  The existing knowledge base was kept.\n"
        "  Check the URL, crawler.domain_filter and your network connection."
    )


def err_embedding_model_mismatch(db_model: str, config_model: str) -> str:
    """Embedding model stored with the index does not match the current config."""
    return (
        f"[red]Error:[/] Embedding model mismatch.\n"
        f"  Knowledge base uses:  {db_model}\n"
        f"  Config has:           {config_model}\n"
        "  Run:  docsync sync  to rebuild the index, or set embedding.model back to the stored model."
    )
