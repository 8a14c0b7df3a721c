"""QR labels for fabric rolls.

The roll id is encoded directly so that the scanners at the spreading tables
can read it back without a lookup. Images are rendered in memory and streamed
to the client for printing.
"""

from io import BytesIO

import qrcode


def roll_label_png(roll_id: str) -> BytesIO:
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(roll_id)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf
