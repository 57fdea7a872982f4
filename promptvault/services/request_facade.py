"""
Request facade: named operations in, result envelopes out.

Every operation is dispatched to the record store (or the import, export and
migration services) and its outcome is wrapped into an ``ApiResponse``.
Failures never escape ``invoke``; they are classified into an error code:
the error's own code for validation, not-found, cancelled and invalid-format
errors, otherwise the operation's fallback code (``CREATE_FAILED`` ...).
"""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from ..core.exceptions import (
    CancelledError,
    NotFoundError,
    VALIDATION_ERROR,
    StorageError,
    ValidationError,
    classify_error,
)
from ..schemas.envelope import ApiResponse, FacadeRequest
from ..schemas.management import RenderedPrompt
from ..utils.variable_replacer import extract_placeholders, replace_variables
from .import_service import ImportReconciler, default_export_filename, export_to_file, read_import_file
from .migration_service import MigrationRunner
from .record_store import RecordStore

logger = logging.getLogger(__name__)

UNKNOWN_OPERATION = "UNKNOWN_OPERATION"

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class FilePicker(Protocol):
    """Interactive file selection; returning None means the user cancelled."""

    async def choose_export_path(self, default_name: str) -> Optional[str]:
        ...

    async def choose_import_path(self) -> Optional[str]:
        ...


def _require(args: Dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required argument: {key}")
    return value.strip() if isinstance(value, str) else value


class RequestFacade:
    """
    Dispatch ``{operation, args}`` requests.

    Args:
        store: Active record store
        picker: Optional file picker used by export/import when no path is given
        migration_target_factory: Builds the remote store for ``migrate:to-remote``;
            the facade closes it after the run
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        picker: Optional[FilePicker] = None,
        migration_target_factory: Optional[Callable[[], RecordStore]] = None,
    ):
        self.store = store
        self.picker = picker
        self.migration_target_factory = migration_target_factory
        self._operations: Dict[str, Tuple[Handler, str]] = self._build_operations()

    @property
    def operations(self) -> List[str]:
        return sorted(self._operations)

    async def handle(self, request: FacadeRequest) -> ApiResponse:
        return await self.invoke(request.operation, request.args)

    async def invoke(self, operation: str, args: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """
        Run one operation.

        Returns:
            ``ApiResponse`` with ``data`` on success or ``error`` on failure
        """
        entry = self._operations.get(operation)
        if entry is None:
            logger.warning(f"Unknown operation requested: {operation}")
            return ApiResponse.fail(UNKNOWN_OPERATION, f"Unknown operation: {operation}")

        handler, fallback = entry
        if args is None:
            args = {}
        if not isinstance(args, dict):
            return ApiResponse.fail(VALIDATION_ERROR, f"{VALIDATION_ERROR}: Arguments must be an object")

        try:
            data = await handler(args)
        except Exception as e:
            code = classify_error(e, fallback)
            if code == fallback:
                logger.error(f"Operation {operation} failed: {e}", exc_info=True)
            else:
                logger.info(f"Operation {operation} rejected with {code}: {e}")
            return ApiResponse.fail(code, str(e))

        return ApiResponse.ok(data)

    # ------------------------------------------------------------------
    # Operation table
    # ------------------------------------------------------------------

    def _build_operations(self) -> Dict[str, Tuple[Handler, str]]:
        s = self.store
        ops: Dict[str, Tuple[Handler, str]] = {
            # Prompts
            "prompt:create": (lambda a: s.create_prompt(_require(a, "payload")), "CREATE_FAILED"),
            "prompt:update": (
                lambda a: s.update_prompt(_require(a, "uuid"), _require(a, "payload")),
                "UPDATE_FAILED",
            ),
            "prompt:delete": (lambda a: s.delete_prompt(_require(a, "uuid")), "DELETE_FAILED"),
            "prompt:get": (self._getter(s.get_prompt, "Prompt"), "GET_FAILED"),
            "prompt:list": (lambda a: s.list_prompts(a.get("params")), "LIST_FAILED"),
            "prompt:search": (lambda a: s.search_prompts(a.get("params")), "SEARCH_FAILED"),
            "prompt:export": (self._export, "EXPORT_FAILED"),
            "prompt:import": (self._import, "IMPORT_FAILED"),
            "prompt:reveal-db": (self._reveal, "REVEAL_FAILED"),
            "migrate:to-remote": (self._migrate, "MIGRATION_FAILED"),
            # Categories
            "category:create": (lambda a: s.create_category(_require(a, "payload")), "CREATE_FAILED"),
            "category:update": (
                lambda a: s.update_category(_require(a, "uuid"), _require(a, "payload")),
                "UPDATE_FAILED",
            ),
            "category:delete": (lambda a: s.delete_category(_require(a, "uuid")), "DELETE_FAILED"),
            "category:get": (self._getter(s.get_category, "Category"), "GET_FAILED"),
            "category:list": (lambda a: s.list_categories(), "LIST_FAILED"),
            # Groups
            "group:create": (lambda a: s.create_group(_require(a, "payload")), "CREATE_FAILED"),
            "group:update": (
                lambda a: s.update_group(_require(a, "uuid"), _require(a, "payload")),
                "UPDATE_FAILED",
            ),
            "group:delete": (lambda a: s.delete_group(_require(a, "uuid")), "DELETE_FAILED"),
            "group:get": (self._getter(s.get_group, "Group"), "GET_FAILED"),
            "group:list": (lambda a: s.list_groups(_require(a, "category_uuid")), "LIST_FAILED"),
            "group:reorder": (lambda a: s.reorder_groups(_require(a, "items")), "REORDER_FAILED"),
            # Management prompts
            "management-prompt:create": (
                lambda a: s.create_management_prompt(_require(a, "payload")),
                "CREATE_FAILED",
            ),
            "management-prompt:update": (
                lambda a: s.update_management_prompt(_require(a, "uuid"), _require(a, "payload")),
                "UPDATE_FAILED",
            ),
            "management-prompt:delete": (
                lambda a: s.delete_management_prompt(_require(a, "uuid")),
                "DELETE_FAILED",
            ),
            "management-prompt:get": (
                self._getter(s.get_management_prompt, "Management prompt"),
                "GET_FAILED",
            ),
            "management-prompt:list": (
                lambda a: s.list_management_prompts(_require(a, "group_uuid")),
                "LIST_FAILED",
            ),
            "management-prompt:reorder": (
                lambda a: s.reorder_management_prompts(_require(a, "items")),
                "REORDER_FAILED",
            ),
            "management-prompt:render": (self._render, "GET_FAILED"),
            # Prompt results
            "prompt-result:create": (
                lambda a: s.create_prompt_result(_require(a, "payload")),
                "CREATE_FAILED",
            ),
            "prompt-result:update": (
                lambda a: s.update_prompt_result(_require(a, "uuid"), _require(a, "payload")),
                "UPDATE_FAILED",
            ),
            "prompt-result:delete": (
                lambda a: s.delete_prompt_result(_require(a, "uuid")),
                "DELETE_FAILED",
            ),
            "prompt-result:get": (self._getter(s.get_prompt_result, "Prompt result"), "GET_FAILED"),
            "prompt-result:list": (
                lambda a: s.list_prompt_results(_require(a, "prompt_uuid")),
                "LIST_FAILED",
            ),
        }
        return ops

    @staticmethod
    def _getter(fetch: Callable[[str], Awaitable[Any]], label: str) -> Handler:
        """Wrap a ``get_*`` call so that a missing record answers NOT_FOUND."""

        async def handler(args: Dict[str, Any]) -> Any:
            record = await fetch(_require(args, "uuid"))
            if record is None:
                raise NotFoundError(f"{label} not found")
            return record

        return handler

    # ------------------------------------------------------------------
    # Handlers with more than one step
    # ------------------------------------------------------------------

    async def _export(self, args: Dict[str, Any]) -> Dict[str, Any]:
        path = args.get("path")
        if not path and self.picker is not None:
            path = await self.picker.choose_export_path(default_export_filename())
        if not path:
            raise CancelledError("Export cancelled")

        count = await export_to_file(self.store, path)
        return {"path": str(Path(path)), "count": count}

    async def _import(self, args: Dict[str, Any]) -> Any:
        path = args.get("path")
        if not path and self.picker is not None:
            path = await self.picker.choose_import_path()
        if not path:
            raise CancelledError("Import cancelled")

        items = read_import_file(path)
        return await ImportReconciler(self.store).import_prompts(items)

    async def _reveal(self, args: Dict[str, Any]) -> Dict[str, Any]:
        return {"backend": self.store.backend_name, "location": self.store.location}

    async def _migrate(self, args: Dict[str, Any]) -> Any:
        if self.migration_target_factory is None:
            raise StorageError("Remote backend not configured")

        target = self.migration_target_factory()
        try:
            return await MigrationRunner(self.store, target).run()
        finally:
            await target.close()

    async def _render(self, args: Dict[str, Any]) -> RenderedPrompt:
        """Expand a management prompt with its group's variables."""
        prompt = await self.store.get_management_prompt(_require(args, "uuid"))
        if prompt is None:
            raise NotFoundError("Management prompt not found")

        group = await self.store.get_group(prompt.group_uuid)
        variables = group.global_variables if group else {}
        content = replace_variables(prompt.content, variables)

        return RenderedPrompt(
            uuid=prompt.uuid,
            group_uuid=prompt.group_uuid,
            name=prompt.name,
            content=content,
            unresolved=[name for name in dict.fromkeys(extract_placeholders(prompt.content)) if name not in variables],
        )
