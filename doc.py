from reportlab.lib.pagesizes import LETTER
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image, PageBreak
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch

TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#404040")),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
    ('GRID', (0, 0), (-1, -1), 1, colors.black),
    ('BACKGROUND', (0, 1), (-1, -1), colors.whitesmoke),
])


def build_table_data(results, workers):
    """One row per worker count, speedup and efficiency for each paradigm."""
    paradigms = list(results.keys())
    header = ['Workers']
    for paradigm in paradigms:
        header += [f'{paradigm} Time', f'{paradigm} Speedup', f'{paradigm} Eff']
    table_data = [header]
    for w in workers:
        row = [w]
        for paradigm in paradigms:
            data = results[paradigm][w]
            row += [f"{data['time']:.3f}s", f"{data['speedup']:.2f}x", f"{data['efficiency']:.2f}"]
        table_data.append(row)
    return table_data


def create_report(results, workers, chart_path, filename, num_images=0, t_seq=None, filters=()):
    doc = SimpleDocTemplate(filename, pagesize=LETTER)
    styles = getSampleStyleSheet()
    story = []

    h1 = styles['Heading1']
    h2 = styles['Heading2']
    normal = styles['Normal']

    # Title Page
    story.append(Spacer(1, 2 * inch))
    story.append(Paragraph("Parallel Filter Engine Benchmark", styles['Title']))
    story.append(Spacer(1, 0.5 * inch))
    story.append(Paragraph(f"{num_images} image(s), filters: {', '.join(filters) or 'none'}", h2))
    story.append(PageBreak())

    # 1. Engine
    story.append(Paragraph("1. Engine", h1))
    bullets = [
        "<b>Bands:</b> each image is split into horizontal row bands, one task per band, "
        "and the call blocks until every band has finished.",
        "<b>Convolution:</b> 3x3 presets applied as a true convolution with float32 "
        "accumulation; by default sampling wraps at the edges of each band.",
        "<b>Channel filters:</b> channel isolation and BT.601 grayscale, truncated to bytes.",
        "<b>Paradigms:</b> <code>ThreadPoolExecutor</code> (shared buffers) and "
        "<code>ProcessPoolExecutor</code> (bands pickled to worker processes).",
    ]
    for b in bullets:
        story.append(Paragraph(f"• {b}", normal))
        story.append(Spacer(1, 6))

    # 2. Performance Analysis
    story.append(PageBreak())
    story.append(Paragraph("2. Performance Analysis", h1))
    if t_seq is not None:
        story.append(Paragraph(f"Sequential baseline: {t_seq:.4f} seconds", normal))
        story.append(Spacer(1, 10))
    story.append(Image(chart_path, width=7 * inch, height=2.2 * inch))
    story.append(Spacer(1, 15))

    story.append(Paragraph("<b>Table 1: Time, speedup and efficiency per worker count</b>", h2))
    table = Table(build_table_data(results, workers))
    table.setStyle(TABLE_STYLE)
    story.append(table)

    doc.build(story)
    return filename
