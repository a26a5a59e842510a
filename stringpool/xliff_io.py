"""
XLIFF 1.2 bridge so a pool can go through CAT tools.

Export writes one trans-unit per translation unit (id = content key).
Placeholder tokens become <x id="N" equiv-text="expression"/> so CAT tools
protect them; import turns them back into "{N}".
"""
import os
from dataclasses import dataclass, field
from typing import List

from lxml import etree

from .editing import PoolEditor
from .errors import PoolLoadError, PoolSaveError
from .logger import get_logger
from .models import Pool, TranslationStatus, TranslationUnit, UnitKind
from .template_codec import escape_literal, split_template

logger = get_logger(__name__)

XLIFF_NS = "urn:oasis:names:tc:xliff:document:1.2"

STATE_BY_STATUS = {
    TranslationStatus.PENDING: "new",
    TranslationStatus.TRANSLATED: "translated",
    TranslationStatus.REVIEWED: "signed-off",
    TranslationStatus.IGNORED: "final",
}

INLINE_PLACEHOLDER_TAGS = ("x", "ph")


def _q(tag: str) -> str:
    return f"{{{XLIFF_NS}}}{tag}"


def _fill_inline(element, text: str, unit: TranslationUnit):
    """Writes text into element, turning {N} tokens into <x/> for parameterized units."""
    if unit.kind != UnitKind.PARAMETERIZED:
        element.text = text
        return

    expressions = {p.index: p.expression for p in unit.placeholders}
    last = None
    for kind, value in split_template(text):
        if kind == "text":
            if last is None:
                element.text = (element.text or "") + value
            else:
                last.tail = (last.tail or "") + value
            continue
        last = etree.SubElement(element, _q("x"), id=str(value))
        if value in expressions:
            last.set("equiv-text", expressions[value])


def _read_inline(node, kind: UnitKind) -> str:
    """Inverse of _fill_inline."""
    if node is None:
        return ""
    if kind != UnitKind.PARAMETERIZED:
        return "".join(node.itertext())

    parts = [escape_literal(node.text or "")]
    for child in node:
        if isinstance(child.tag, str) and etree.QName(child).localname in INLINE_PLACEHOLDER_TAGS:
            parts.append(f"{{{child.get('id', '')}}}")
        else:
            parts.append(escape_literal("".join(child.itertext())))
        parts.append(escape_literal(child.tail or ""))
    return "".join(parts)


def export_xliff(pool: Pool, file_path: str):
    root = etree.Element(_q("xliff"), nsmap={None: XLIFF_NS})
    root.set("version", "1.2")

    file_node = etree.SubElement(root, _q("file"))
    file_node.set("original", pool.project_name)
    file_node.set("datatype", "plaintext")
    file_node.set("source-language", pool.source_language)
    file_node.set("target-language", pool.target_language)
    body = etree.SubElement(file_node, _q("body"))

    for unit in pool.units:
        tu = etree.SubElement(body, _q("trans-unit"), id=unit.key)
        if unit.status == TranslationStatus.IGNORED:
            tu.set("translate", "no")

        source = etree.SubElement(tu, _q("source"))
        _fill_inline(source, unit.source_text, unit)

        target = etree.SubElement(tu, _q("target"), state=STATE_BY_STATUS[unit.status])
        if unit.is_translated:
            _fill_inline(target, unit.target_text, unit)

        for context in unit.contexts:
            group = etree.SubElement(tu, _q("context-group"), purpose="location")
            etree.SubElement(group, _q("context"), {"context-type": "sourcefile"}).text = context.file_path
            etree.SubElement(group, _q("context"), {"context-type": "linenumber"}).text = str(context.line)
            if context.enclosing_scope:
                etree.SubElement(group, _q("context"), {"context-type": "x-scope"}).text = context.enclosing_scope

        if unit.note:
            etree.SubElement(tu, _q("note")).text = unit.note

    try:
        dir_name = os.path.dirname(os.path.abspath(file_path))
        os.makedirs(dir_name, exist_ok=True)
        etree.ElementTree(root).write(file_path, encoding="utf-8", xml_declaration=True)
    except OSError as e:
        raise PoolSaveError(f"Could not write XLIFF to {file_path}: {e}") from e

    logger.info(f"Exported {len(pool.units)} translation units to {file_path}")


@dataclass
class XliffImportReport:
    applied: int = 0
    reviewed: int = 0
    skipped: int = 0
    unknown: int = 0
    messages: List[str] = field(default_factory=list)


def import_xliff(editor: PoolEditor, file_path: str) -> XliffImportReport:
    """
    Applies targets from an XLIFF file to the editor's pool.

    A trans-unit is applied only when its id is a pool key and its source still
    equals the unit's source text; mismatches are skipped and reported.
    """
    if not os.path.exists(file_path):
        raise PoolLoadError(f"XLIFF file not found: {file_path}")

    try:
        parser = etree.XMLParser(remove_blank_text=False)
        root = etree.parse(file_path, parser).getroot()
    except (OSError, etree.XMLSyntaxError) as e:
        raise PoolLoadError(f"Could not parse XLIFF {file_path}: {e}") from e

    report = XliffImportReport()

    for tu in root.xpath('//*[local-name()="trans-unit"]'):
        key = tu.get("id")
        unit = editor.find(key)
        if unit is None:
            report.unknown += 1
            continue
        if tu.get("translate") == "no":
            continue

        source_nodes = tu.xpath('*[local-name()="source"]')
        target_nodes = tu.xpath('*[local-name()="target"]')
        source_node = source_nodes[0] if source_nodes else None
        target_node = target_nodes[0] if target_nodes else None

        source_text = _read_inline(source_node, unit.kind)
        if source_text != unit.source_text:
            report.skipped += 1
            message = f"Source mismatch for {key}: expected \"{unit.source_text}\", found \"{source_text}\""
            report.messages.append(message)
            logger.warning(message)
            continue

        target_text = _read_inline(target_node, unit.kind)
        if not target_text:
            continue

        if target_text != unit.target_text:
            editor.set_target(key, target_text)
            report.applied += 1

        state = target_node.get("state") if target_node is not None else None
        if state == "signed-off" and unit.status == TranslationStatus.TRANSLATED:
            editor.mark_reviewed(key)
            report.reviewed += 1

    logger.info(
        f"XLIFF import: {report.applied} applied, {report.reviewed} reviewed, "
        f"{report.skipped} skipped, {report.unknown} unknown"
    )
    return report
