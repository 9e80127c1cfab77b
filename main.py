import io
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from starlette.datastructures import UploadFile

import settings
from pdf_extract import ExtractionFailed, FailureKind, Outcome, extract_images

logger = logging.getLogger(__name__)

app = FastAPI(title="PDF Image Extractor")

HTML_FORM = f"""
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>PDF Image Extractor</title>
  <style>
    * {{ box-sizing: border-box; margin: 0; padding: 0; }}
    body {{ font-family: system-ui, sans-serif; background: #f5f5f5; display: flex;
           justify-content: center; align-items: center; min-height: 100vh; }}
    .card {{ background: #fff; border-radius: 12px; padding: 2.5rem; max-width: 420px;
            width: 100%; box-shadow: 0 2px 12px rgba(0,0,0,0.08); text-align: center; }}
    h1 {{ font-size: 1.4rem; margin-bottom: 0.5rem; }}
    p {{ color: #666; font-size: 0.9rem; margin-bottom: 1.5rem; }}
    label {{ display: block; border: 2px dashed #ccc; border-radius: 8px; padding: 2rem;
            cursor: pointer; margin-bottom: 1rem; }}
    input[type="file"] {{ display: none; }}
    button {{ background: #111; color: #fff; border: none; border-radius: 8px;
             padding: 0.75rem 2rem; font-size: 1rem; cursor: pointer; width: 100%; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>PDF Image Extractor</h1>
    <p>Upload a PDF to get its embedded JPEG, PNG and other image files as a zip.</p>
    <form action="/extract" method="post" enctype="multipart/form-data">
      <label>
        <span id="fname">Click to select a PDF</span>
        <input type="file" name="{settings.UPLOAD_FIELD}" accept="application/pdf" required
               onchange="document.getElementById('fname').textContent = this.files[0]?.name || 'Click to select a PDF';">
      </label>
      <button type="submit">Extract Images</button>
    </form>
  </div>
</body>
</html>
"""


async def read_pdf_upload(request: Request) -> bytes | None:
    """Return the uploaded PDF bytes, or None if the request carries none.

    A raw ``application/pdf`` body is taken as-is. In a multipart body the
    first file part named ``pdfFile`` with type ``application/pdf`` wins and
    every other part is discarded.
    """
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type == settings.PDF_MEDIA_TYPE:
        return await request.body() or None

    if content_type != "multipart/form-data":
        return None

    form = await request.form()
    try:
        for field, value in form.multi_items():
            if (
                field == settings.UPLOAD_FIELD
                and isinstance(value, UploadFile)
                and value.content_type == settings.PDF_MEDIA_TYPE
            ):
                return await value.read()
            logger.debug("Discarding form part %r", field)
    finally:
        await form.close()
    return None


@app.get("/", response_class=HTMLResponse)
async def index():
    return HTML_FORM


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.post("/")
@app.post("/extract")
async def extract(request: Request):
    pdf_bytes = await read_pdf_upload(request)
    if not pdf_bytes:
        raise HTTPException(status_code=400, detail="No PDF file uploaded.")

    try:
        result = extract_images(pdf_bytes)
    except ExtractionFailed as exc:
        if exc.kind is FailureKind.BAD_INPUT:
            raise HTTPException(status_code=400, detail=f"Invalid PDF: {exc.message}") from exc
        logger.error("Error processing PDF: %s", exc.message)
        raise HTTPException(status_code=500, detail=f"Internal Server Error: {exc.message}") from exc

    if result.outcome is Outcome.NO_IMAGES_FOUND:
        raise HTTPException(status_code=404, detail="No images found in the PDF.")

    return StreamingResponse(
        io.BytesIO(result.archive),
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
