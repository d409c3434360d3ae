from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated

from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from vault.errors import VaultError
from vault.paths import ensure_markdown_extension
from vault.store import ListResult, SearchHit, VaultStore

if TYPE_CHECKING:
    from fastmcp import FastMCP

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, openWorldHint=False)
WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False)


def format_list_result(result: ListResult, path: str) -> str:
    output: list[str] = []

    if result.folders:
        output.append("## Folders")
        for folder in result.folders:
            output.append(f"- 📁 {folder.rstrip('/')}")

    if result.files:
        if output:
            output.append("")
        output.append("## Files")
        for note in result.files:
            output.append(f"- 📄 {note.path} ({note.size / 1024:.1f} KB)")

    if result.truncated:
        output.append("")
        output.append("_Results truncated. More items available._")

    if not output:
        return f"No files found in '{path or '/'}'"
    return "\n".join(output)


def format_search_results(query: str, hits: list[SearchHit]) -> str:
    if not hits:
        return f"No notes found containing '{query}'"

    output = [f'## Search Results for "{query}"', ""]
    for position, hit in enumerate(hits, start=1):
        output.append(f"### {position}. {hit.path}")
        output.append(f"> {hit.snippet}")
        output.append("")
    return "\n".join(output)


def write_note_text(store: VaultStore, path: str, content: str, overwrite: bool) -> str:
    normalized = ensure_markdown_extension(path)
    exists = store.exists(path)
    if exists and not overwrite:
        raise ToolError(
            f"Note '{normalized}' already exists. Set overwrite=true to replace it."
        )

    store.write(path, content)
    action = "Updated" if exists else "Created"
    return f"{action} note: {normalized}"


def register_vault_tools(mcp: "FastMCP", store: VaultStore) -> None:
    @mcp.tool(
        name="read_note",
        description="Read the contents of a note from the Obsidian vault",
        annotations=READ_ONLY,
    )
    async def read_note(
        path: Annotated[str, Field(description="Path to the note (e.g., 'folder/note.md' or 'note')")],
    ) -> str:
        try:
            return await asyncio.to_thread(store.read, path)
        except VaultError as error:
            raise ToolError(f"Failed to read note '{path}': {error}") from error

    @mcp.tool(
        name="write_note",
        description="Create a new note or update an existing note in the Obsidian vault",
        annotations=WRITE,
    )
    async def write_note(
        path: Annotated[str, Field(description="Path for the note (e.g., 'folder/note.md' or 'note')")],
        content: Annotated[str, Field(description="Markdown content of the note")],
        overwrite: Annotated[bool, Field(description="Set to true to overwrite existing notes")] = False,
    ) -> str:
        try:
            return await asyncio.to_thread(write_note_text, store, path, content, overwrite)
        except VaultError as error:
            raise ToolError(f"Failed to write note '{path}': {error}") from error

    @mcp.tool(
        name="list_files",
        description="List files and folders in the Obsidian vault",
        annotations=READ_ONLY,
    )
    async def list_files(
        path: Annotated[str, Field(description="Directory path to list (empty for root)")] = "",
        max_results: Annotated[int, Field(description="Maximum number of items to return", ge=1)] = 50,
    ) -> str:
        try:
            result = await asyncio.to_thread(store.list, path, max_results)
        except VaultError as error:
            raise ToolError(f"Failed to list files: {error}") from error
        return format_list_result(result, path)

    @mcp.tool(
        name="search_notes",
        description="Search for notes containing specific text",
        annotations=READ_ONLY,
    )
    async def search_notes(
        query: Annotated[str, Field(description="Search query (minimum 2 characters)", min_length=2)],
        path: Annotated[str, Field(description="Limit search to this directory")] = "",
        max_results: Annotated[int, Field(description="Maximum number of results to return", ge=1)] = 10,
    ) -> str:
        try:
            hits = await asyncio.to_thread(store.search, query, path, max_results)
        except VaultError as error:
            raise ToolError(f"Search failed: {error}") from error
        return format_search_results(query, hits)
