"""Lead import - write parsed export rows into the store row by row."""

from typing import Callable, Optional
from ulid import ULID
from homenest.models.lead_import import ImportMode, ImportPhase, ImportProgress, ImportResult, ParsedRow
from homenest.services.lead_parser import parse_lead_row
from homenest.services.lead_store import LeadStore
from homenest.utils.config import Settings
from homenest.utils.errors import ConfirmationRequiredError, ImportValidationError, SupabaseError
from homenest.utils.logging import correlation_context, get_structured_logger, log_timing, mask_sensitive_data

logger = get_structured_logger(__name__)

REPLACE_CONFIRMATION = "DELETE"

ProgressCallback = Callable[[ImportProgress], None]


def generate_batch_id() -> str:
    """Generate a sortable batch ID."""
    return str(ULID())


class LeadImporter:
    """Materializes export rows as properties, contacts, phones and emails."""

    def __init__(self, store: LeadStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def import_rows(
        self,
        rows: list[dict[str, str]],
        mode: ImportMode,
        confirmation: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        """Import rows in append or replace mode.

        Replace requires confirmation == "DELETE" and raises
        ConfirmationRequiredError before any store access otherwise. Failing the
        table check, loading existing addresses or clearing data raises
        SupabaseError before any insert. Per-row failures are counted and never
        abort the run.
        """
        try:
            mode = ImportMode(mode)
        except ValueError:
            raise ImportValidationError(f"Unknown import mode: {mode}")

        if mode == ImportMode.REPLACE and confirmation != REPLACE_CONFIRMATION:
            raise ConfirmationRequiredError(
                f'Replace import requires typing "{REPLACE_CONFIRMATION}" to confirm'
            )

        batch_id = generate_batch_id()
        result = ImportResult(batch_id=batch_id)
        progress = ImportProgress(phase=ImportPhase.CHECKING, total=len(rows))

        def report(phase: Optional[ImportPhase] = None) -> None:
            if phase is not None:
                progress.phase = phase
            progress.properties_imported = result.properties_imported
            progress.contacts_created = result.contacts_created
            progress.phones_created = result.phones_created
            progress.emails_created = result.emails_created
            progress.duplicates_skipped = result.duplicates_skipped
            progress.errors = result.errors
            if on_progress:
                on_progress(progress.model_copy())

        with correlation_context(batch_id):
            with log_timing("lead_import", logger=logger, mode=mode.value, total_rows=len(rows)):
                report()
                try:
                    seen_keys = await self._prepare(mode, report)
                except SupabaseError as e:
                    logger.error("Import aborted before any insert", error=str(e), batch_id=batch_id)
                    report(ImportPhase.ERROR)
                    raise

                report(ImportPhase.IMPORTING)
                for index, row in enumerate(rows, start=1):
                    await self._import_row(row, batch_id, seen_keys, result)
                    progress.current = index
                    report()

                result.success = result.errors == 0
                await self._write_log(rows, result)
                report(ImportPhase.DONE)

        logger.info(
            "Import completed",
            batch_id=batch_id,
            mode=mode.value,
            properties_imported=result.properties_imported,
            duplicates_skipped=result.duplicates_skipped,
            errors=result.errors,
        )
        return result

    async def _prepare(self, mode: ImportMode, report: Callable) -> set[str]:
        """Run the fatal preconditions; returns address keys to treat as duplicates."""
        await self.store.check_table("properties")

        if mode == ImportMode.REPLACE:
            report(ImportPhase.CLEARING)
            await self.store.delete_all_leads()
            return set()

        return await self.store.get_existing_address_keys(self.settings.import_source)

    async def _import_row(
        self,
        row: dict[str, str],
        batch_id: str,
        seen_keys: set[str],
        result: ImportResult,
    ) -> None:
        try:
            parsed = parse_lead_row(
                row,
                batch_id,
                import_source=self.settings.import_source,
                default_state=self.settings.default_state,
            )
        except Exception as e:
            self._record_error(result, f"Row could not be parsed: {e}")
            return

        if parsed is None:
            self._record_error(result, "Row is missing Property Address or Property City")
            return

        if parsed.address_normalized in seen_keys:
            result.duplicates_skipped += 1
            return

        try:
            await self._write_row(parsed, seen_keys, result)
        except Exception as e:
            logger.warning(
                "Row import failed",
                street_address=parsed.property_record.get("street_address"),
                error=mask_sensitive_data(str(e)),
            )
            self._record_error(result, f'Row "{parsed.property_record.get("street_address")}": {e}')

    async def _write_row(self, parsed: ParsedRow, seen_keys: set[str], result: ImportResult) -> None:
        property_id = await self.store.insert_property(parsed.property_record)
        seen_keys.add(parsed.address_normalized)
        result.properties_imported += 1

        contact_rows = [
            {
                "property_id": property_id,
                **contact.model_dump(exclude={"phones", "emails"}),
            }
            for contact in parsed.contacts
        ]
        inserted_contacts = await self.store.insert_rows("contacts", contact_rows)
        result.contacts_created += len(inserted_contacts)

        phone_rows = []
        email_rows = []
        # Inserted rows come back in the order they were sent
        for contact, stored in zip(parsed.contacts, inserted_contacts):
            phone_rows.extend({"contact_id": stored["id"], **phone.model_dump()} for phone in contact.phones)
            email_rows.extend({"contact_id": stored["id"], **email.model_dump()} for email in contact.emails)

        inserted_phones = await self.store.insert_rows("phones", phone_rows)
        result.phones_created += len(inserted_phones)
        for phone in inserted_phones:
            if phone.get("is_dnc"):
                result.dnc_phones += 1
            else:
                result.callable_phones += 1

        inserted_emails = await self.store.insert_rows("emails", email_rows)
        result.emails_created += len(inserted_emails)
        logger.debug(
            "Row imported",
            property_id=property_id,
            contacts=len(parsed.contacts),
            phones=len(parsed.phones),
            emails=len(parsed.emails),
        )

    def _record_error(self, result: ImportResult, message: str) -> None:
        result.errors += 1
        if len(result.error_messages) < self.settings.import_max_error_messages:
            result.error_messages.append(message)

    async def _write_log(self, rows: list[dict[str, str]], result: ImportResult) -> None:
        try:
            await self.store.insert_import_log({
                "source": self.settings.import_source,
                "filename": f"import_batch_{result.batch_id}",
                "total_records": len(rows),
                "imported": result.properties_imported,
                "duplicates": result.duplicates_skipped,
                "errors": result.errors,
            })
        except SupabaseError as e:
            logger.warning("Failed to write import log", batch_id=result.batch_id, error=str(e))
