from PySide6.QtWidgets import QWidget
from PySide6.QtGui import QPainter, QPen, QColor, QPixmap, QPolygonF, QPainterPath, QFont
from PySide6.QtCore import Qt, QRectF, QPointF

from opg_ui.core.editor import QuadEditor
from opg_ui.core.quad import CORNER_LABELS, ScreenMapping

HANDLE_R = 22
TEAL = QColor("#14b8a6")


class QuadCanvas(QWidget):
    def __init__(self, editor: QuadEditor | None = None, parent=None):
        super().__init__(parent)
        self.pix = None
        self.editor = editor or QuadEditor()
        self.editor.add_listener(lambda _q: self.update())
        self.show_quad = True
        self._img_w = 0
        self._img_h = 0
        self.setMouseTracking(False)

    def set_image(self, qpix: QPixmap | None):
        self.pix = qpix
        self._img_w = qpix.width() if qpix else 0
        self._img_h = qpix.height() if qpix else 0
        self._sync_mapping()
        self.update()

    def set_quad_visible(self, visible: bool):
        self.show_quad = visible
        self.update()

    def _sync_mapping(self):
        m = ScreenMapping.for_container(self.width(), self.height(), self._img_w, self._img_h)
        self.editor.set_mapping(m)
        return m

    def resizeEvent(self, e):
        self._sync_mapping()
        super().resizeEvent(e)

    def mousePressEvent(self, e):
        if not self.show_quad or not self.pix:
            return
        pos = e.position()
        idx = self.editor.hit_test(pos.x(), pos.y(), HANDLE_R)
        if idx is not None:
            self.editor.drag_begin(idx)

    def mouseMoveEvent(self, e):
        if self.editor.dragging is None:
            return
        pos = e.position()
        self.editor.drag_move(pos.x(), pos.y())

    def mouseReleaseEvent(self, e):
        self.editor.drag_end()
        self.update()

    def paintEvent(self, e):
        p = QPainter(self)
        p.setRenderHint(QPainter.RenderHint.Antialiasing)
        p.fillRect(self.rect(), QColor("#000000"))
        if not self.pix:
            return
        r = self._sync_mapping().rect
        dr = QRectF(r.left, r.top, r.width, r.height)
        p.drawPixmap(dr, self.pix, QRectF(self.pix.rect()))
        if not self.show_quad:
            return

        m = self.editor.mapping
        pts = [QPointF(*m.to_screen(c)) for c in self.editor.quad]
        poly = QPolygonF(pts)

        # darken everything outside the quad
        outside = QPainterPath()
        outside.addRect(QRectF(self.rect()))
        inside = QPainterPath()
        inside.addPolygon(poly)
        inside.closeSubpath()
        p.fillPath(outside.subtracted(inside), QColor(0, 0, 0, 153))

        p.setPen(QPen(TEAL, 2.5))
        p.drawPolygon(poly)

        tl, tr, br, bl = pts
        p.setOpacity(0.3)
        p.setPen(QPen(TEAL, 1))
        for t in (1 / 3, 2 / 3):
            p.drawLine(tl + (tr - tl) * t, bl + (br - bl) * t)
            p.drawLine(tl + (bl - tl) * t, tr + (br - tr) * t)
        p.setOpacity(1.0)

        font = QFont()
        font.setBold(True)
        font.setPointSize(8)
        p.setFont(font)
        for i, sp in enumerate(pts):
            p.setPen(QPen(QColor("#ffffff"), 2))
            p.setBrush(TEAL.darker(120) if self.editor.dragging == i else TEAL)
            p.drawEllipse(sp, HANDLE_R, HANDLE_R)
            box = QRectF(sp.x() - HANDLE_R, sp.y() - HANDLE_R, 2 * HANDLE_R, 2 * HANDLE_R)
            p.drawText(box, Qt.AlignmentFlag.AlignCenter, CORNER_LABELS[i])
