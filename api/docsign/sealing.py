# Inline sealing using pypdf + reportlab: stamps captured field values onto
# the signed version and appends a certificate of completion.

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from io import BytesIO
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
import json, base64, binascii, hashlib, datetime

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

def count_pages(pdf_bytes: bytes) -> int:
    """Return the page count, raising ValueError for data pypdf cannot read."""
    try:
        return len(PdfReader(BytesIO(pdf_bytes)).pages)
    except (PdfReadError, ValueError, KeyError, TypeError) as exc:
        raise ValueError(f"not a readable PDF: {exc}") from exc

def _png_bytes(value: str) -> bytes:
    # accepts "data:image/png;base64,..." or bare base64
    if "," in value:
        value = value.split(",", 1)[1]
    return base64.b64decode(value)

def decode_signature_image(value) -> bytes:
    """Decode a base64 or data-URL PNG, raising ValueError when it is not one."""
    try:
        png = _png_bytes(str(value))
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"signature is not valid base64: {exc}") from exc
    if not png.startswith(PNG_SIGNATURE):
        raise ValueError("signature is not a PNG image")
    try:
        ImageReader(BytesIO(png)).getSize()
    except Exception as exc:
        raise ValueError(f"unreadable signature image: {exc}") from exc
    return png

def _overlay_page(width, height, draw_ops):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(width, height))
    for op in draw_ops:
        t = op.get("type")
        if t == "text":
            c.setFont("Helvetica", 10)
            c.drawString(op["x"], op["y"], op["text"])
        elif t == "checkbox":
            x, y = op["x"], op["y"]
            c.rect(x, y, 10, 10, stroke=1, fill=0)
            if op.get("checked"):
                c.line(x, y, x+10, y+10); c.line(x, y+10, x+10, y)
        elif t == "signature":
            x, y, w, h = op["x"], op["y"], op["w"], op["h"]
            c.drawImage(ImageReader(BytesIO(op["png"])), x, y, width=w, height=h, mask='auto')
    c.showPage()
    c.save()
    return buf.getvalue()

def _append_certificate(writer: PdfWriter, audit: dict):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(72, 750, "Certificate of Completion")
    c.setFont("Helvetica", 10)
    y = 720
    for k, v in audit.items():
        line = f"{k}: {v}"
        c.drawString(72, y, line[:95])
        y -= 14
        if y < 72:
            c.showPage(); c.setFont("Helvetica", 10); y = 750
    c.showPage(); c.save()
    buf.seek(0)
    writer.append_pages_from_reader(PdfReader(buf))

def _draw_ops(value: dict) -> dict | None:
    t = value.get("type")
    raw = value.get("value")
    if raw in (None, "", False):
        return None
    if t in ("text", "date"):
        return {"type": "text", "x": value["x"], "y": value["y"], "text": str(raw)}
    if t == "checkbox":
        return {"type": "checkbox", "x": value["x"], "y": value["y"], "checked": bool(raw)}
    if t in ("signature", "initials"):
        return {
            "type": "signature",
            "x": value["x"],
            "y": value["y"],
            "w": value.get("w") or 180.0,
            "h": value.get("h") or 80.0,
            "png": decode_signature_image(raw),
        }
    return None

def seal_pdf(original_pdf_bytes: bytes, document_id: int, version: int, values: dict, signers: list):
    """Stamp ``values`` onto the PDF and append a completion certificate.

    ``values`` maps field id to ``{"type", "page", "x", "y", "w", "h", "value"}``.
    Returns ``(final_pdf_bytes, audit_json, sha256_final)``.
    """
    reader = PdfReader(BytesIO(original_pdf_bytes))
    writer = PdfWriter()
    num_pages = len(reader.pages)
    for page in reader.pages:
        writer.add_page(page)

    draw_map = {}  # page_index -> [ops]
    for v in values.values():
        op = _draw_ops(v)
        if op is None:
            continue
        p = max(0, min(num_pages - 1, int(v.get("page", 1)) - 1))
        draw_map.setdefault(p, []).append(op)

    for pidx, ops in draw_map.items():
        page = reader.pages[pidx]
        overlay_pdf = _overlay_page(float(page.mediabox.width), float(page.mediabox.height), ops)
        writer.pages[pidx].merge_page(PdfReader(BytesIO(overlay_pdf)).pages[0])

    audit = {
        "document_id": document_id,
        "version": version,
        "sha256_original": hashlib.sha256(original_pdf_bytes).hexdigest(),
        "sealed_at": datetime.datetime.utcnow().isoformat() + "Z",
    }
    for idx, signer in enumerate(signers, start=1):
        audit[f"signer_{idx}"] = signer

    _append_certificate(writer, audit)

    out_buf = BytesIO()
    writer.write(out_buf)
    final_bytes = out_buf.getvalue()
    sha_final = hashlib.sha256(final_bytes).hexdigest()
    audit_json = json.dumps({**audit, "sha256_final": sha_final})
    return final_bytes, audit_json, sha_final
