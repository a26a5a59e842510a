from PyQt6.QtCore import QAbstractTableModel, QModelIndex, QSortFilterProxyModel, Qt
from PyQt6.QtGui import QBrush, QColor

from .editing import PoolEditor
from .models import TranslationStatus, UnitKind

COL_KEY, COL_STATUS, COL_USAGE, COL_KIND, COL_SOURCE, COL_TARGET = range(6)


class PoolTableModel(QAbstractTableModel):
    """
    Table view over a PoolEditor. Target edits go through the editor so the
    status state machine and the editor lock apply to GUI edits too.
    """

    def __init__(self, editor: PoolEditor):
        super().__init__()
        self.editor = editor
        self.headers = ["Key", "Status", "Usage", "Kind", "Source", "Target"]

    @property
    def units(self):
        return self.editor.units

    def rowCount(self, parent=QModelIndex()):
        if parent.isValid():
            return 0
        return len(self.units)

    def columnCount(self, parent=QModelIndex()):
        if parent.isValid():
            return 0
        return len(self.headers)

    def data(self, index, role=Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or not (0 <= index.row() < len(self.units)):
            return None

        unit = self.units[index.row()]
        col = index.column()

        if role == Qt.ItemDataRole.DisplayRole or role == Qt.ItemDataRole.EditRole:
            if col == COL_KEY: return unit.key
            elif col == COL_STATUS: return unit.status.value
            elif col == COL_USAGE: return unit.usage_count
            elif col == COL_KIND: return "Template" if unit.kind == UnitKind.PARAMETERIZED else "Literal"
            elif col == COL_SOURCE: return unit.source_text
            elif col == COL_TARGET: return unit.target_text

        elif role == Qt.ItemDataRole.ToolTipRole:
            if col == COL_USAGE or col == COL_SOURCE:
                if not unit.contexts:
                    return "No contexts"
                return "\n".join(f"{c.file_path}:{c.line}  {c.enclosing_scope}" for c in unit.contexts)
            elif col == COL_TARGET and unit.placeholders:
                return "\n".join(f"{p.token} = {p.expression}" for p in unit.placeholders)
            elif col == COL_STATUS and unit.note:
                return unit.note

        elif role == Qt.ItemDataRole.BackgroundRole:
            if unit.status == TranslationStatus.IGNORED:
                return QBrush(QColor(225, 225, 225))  # Grey for ignored
            elif unit.status == TranslationStatus.PENDING:
                return QBrush(QColor(255, 255, 200))  # Light yellow for pending

        return None

    def headerData(self, section, orientation, role=Qt.ItemDataRole.DisplayRole):
        if role == Qt.ItemDataRole.DisplayRole and orientation == Qt.Orientation.Horizontal:
            return self.headers[section]
        return None

    def flags(self, index):
        if not index.isValid(): return Qt.ItemFlag.NoItemFlags

        flags = super().flags(index)
        unit = self.units[index.row()]

        if index.column() == COL_TARGET and unit.status != TranslationStatus.IGNORED:
            flags |= Qt.ItemFlag.ItemIsEditable

        return flags

    def setData(self, index, value, role=Qt.ItemDataRole.EditRole):
        if not index.isValid() or role != Qt.ItemDataRole.EditRole or index.column() != COL_TARGET:
            return False

        unit = self.units[index.row()]
        if unit.status == TranslationStatus.IGNORED or unit.target_text == value:
            return False

        self.editor.set_target(unit.key, value)
        self.dataChanged.emit(index, index, [Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole])
        # Notify status column changed
        idx_status = self.index(index.row(), COL_STATUS)
        self.dataChanged.emit(idx_status, idx_status, [Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.BackgroundRole])
        return True

    def reload(self):
        """Call after the editor's pool was replaced or bulk-edited."""
        self.beginResetModel()
        self.endResetModel()


class PoolFilterProxyModel(QSortFilterProxyModel):
    FILTERS = ("All", "Pending", "Translated", "Ignored")

    def __init__(self):
        super().__init__()
        self.status_filter = "All"
        self.text_filter = ""

    def set_status_filter(self, status):
        self.status_filter = status
        self.invalidateFilter()

    def set_text_filter(self, text):
        self.text_filter = text.lower()
        self.invalidateFilter()

    def filterAcceptsRow(self, source_row, source_parent):
        model = self.sourceModel()
        unit = model.units[source_row]

        if self.status_filter == "Pending" and unit.status != TranslationStatus.PENDING:
            return False
        if self.status_filter == "Translated" and unit.status not in (
                TranslationStatus.TRANSLATED, TranslationStatus.REVIEWED):
            return False
        if self.status_filter == "Ignored" and unit.status != TranslationStatus.IGNORED:
            return False

        if self.text_filter:
            s_text = (unit.source_text or "").lower()
            t_text = (unit.target_text or "").lower()
            if self.text_filter not in s_text and self.text_filter not in t_text:
                return False

        return True
