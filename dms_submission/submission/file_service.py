"""
Archive Assembly

Builds the zip that is archived for each submission: the submitted PDF plus a
metadata.xml manifest. Every submission gets its own scratch directory, which
is removed on every exit path.
"""

import logging
import shutil
import tempfile
import zipfile
from contextlib import asynccontextmanager
from datetime import timezone
from pathlib import Path
from typing import AsyncIterator, Optional
from xml.etree import ElementTree

from .models import SubmissionMetadata

logger = logging.getLogger(__name__)

PDF_ENTRY_NAME = "iform.pdf"
METADATA_ENTRY_NAME = "metadata.xml"


class FileService:
    """Scratch directories and archive assembly."""

    def __init__(self, work_dir_root: Optional[str] = None):
        self.work_dir_root = work_dir_root

    def work_dir(self) -> Path:
        """Create a fresh directory owned by a single submission."""
        return Path(tempfile.mkdtemp(prefix="dms-submission-", dir=self.work_dir_root))

    def delete_work_dir(self, work_dir: Path) -> None:
        """Remove a scratch directory. Failures are logged, never raised."""
        try:
            shutil.rmtree(work_dir)
            logger.debug(f"Deleted working dir at {work_dir}")
        except Exception:
            logger.exception(f"Failed to delete working dir at {work_dir}")

    @asynccontextmanager
    async def working_dir(self) -> AsyncIterator[Path]:
        """Yield a scratch directory, deleting it even on error or cancellation."""
        work_dir = self.work_dir()
        try:
            yield work_dir
        finally:
            self.delete_work_dir(work_dir)

    def create_zip(
        self,
        work_dir: Path,
        pdf: Path,
        metadata: SubmissionMetadata,
        item_id: str,
    ) -> Path:
        """Write <item_id>.zip holding the PDF and its metadata manifest."""
        manifest = work_dir / METADATA_ENTRY_NAME
        manifest.write_bytes(render_metadata_xml(metadata, item_id))

        zip_path = work_dir / f"{item_id}.zip"
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.write(pdf, arcname=PDF_ENTRY_NAME)
            archive.write(manifest, arcname=METADATA_ENTRY_NAME)
        return zip_path


def _add_attribute(parent: ElementTree.Element, name: str, attr_type: str, value: str) -> None:
    attribute = ElementTree.SubElement(parent, "attribute")
    ElementTree.SubElement(attribute, "attribute_name").text = name
    ElementTree.SubElement(attribute, "attribute_type").text = attr_type
    values = ElementTree.SubElement(attribute, "attribute_values")
    ElementTree.SubElement(values, "attribute_value").text = value


def render_metadata_xml(metadata: SubmissionMetadata, item_id: str) -> bytes:
    """Render the document manifest the downstream system indexes on."""
    received = metadata.time_of_receipt.astimezone(timezone.utc).strftime("%d/%m/%Y %H:%M:%S")

    documents = ElementTree.Element("documents", {"xmlns": "http://govtalk.gov.uk/hmrc/gis/content/1"})
    document = ElementTree.SubElement(documents, "document")
    header = ElementTree.SubElement(document, "header")
    ElementTree.SubElement(header, "title").text = item_id
    ElementTree.SubElement(header, "format").text = "pdf"
    ElementTree.SubElement(header, "mime_type").text = "application/pdf"
    ElementTree.SubElement(header, "store").text = str(metadata.store).lower()
    ElementTree.SubElement(header, "source").text = metadata.source
    ElementTree.SubElement(header, "target").text = "DMS"
    ElementTree.SubElement(header, "reconciliation_id").text = item_id

    attributes = ElementTree.SubElement(document, "metadata")
    _add_attribute(attributes, "hmrc_time_of_receipt", "time", received)
    _add_attribute(attributes, "time_xml_created", "time", received)
    _add_attribute(attributes, "submission_reference", "string", item_id)
    _add_attribute(attributes, "form_id", "string", metadata.form_id)
    _add_attribute(attributes, "number_pages", "int", str(metadata.number_of_pages))
    _add_attribute(attributes, "source", "string", metadata.source)
    _add_attribute(attributes, "customer_id", "string", metadata.customer_id)
    _add_attribute(attributes, "submission_mark", "string", metadata.submission_mark)
    _add_attribute(attributes, "cas_key", "string", metadata.cas_key)
    _add_attribute(attributes, "classification_type", "string", metadata.classification_type)
    _add_attribute(attributes, "business_area", "string", metadata.business_area)
    _add_attribute(attributes, "attachment_count", "int", "0")

    return ElementTree.tostring(documents, encoding="utf-8", xml_declaration=True)
