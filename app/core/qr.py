import io
import segno

QR_SIZE = 256
QR_BORDER = 4


def render_qr_png(data: str, *, size: int = QR_SIZE) -> bytes:
    """Renders data as a medium error-correction QR code PNG about `size` pixels wide."""
    qr = segno.make(data, error="m", micro=False)
    width, _ = qr.symbol_size(scale=1, border=QR_BORDER)
    buf = io.BytesIO()
    qr.save(buf, kind="png", scale=max(1, size // width), border=QR_BORDER)
    return buf.getvalue()
