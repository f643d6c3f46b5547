"""
PDF documents: cash flow report, report card (rapor) and monthly report.

All generators return the finished document as bytes.
"""
from datetime import datetime

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from fpdf.fonts import FontFace

FONT = 'Helvetica'
NEXT_LINE = {'new_x': XPos.LMARGIN, 'new_y': YPos.NEXT}


def format_rupiah(value):
    amount = value or 0
    formatted = f'{abs(amount):,.0f}'.replace(',', '.')
    return f'-Rp {formatted}' if amount < 0 else f'Rp {formatted}'


def clean(text):
    """Core PDF fonts only cover latin-1."""
    if text is None or text == '':
        return '-'
    return str(text).encode('latin-1', 'replace').decode('latin-1')


def new_document(title, subtitle=None, orientation='P'):
    pdf = FPDF(orientation=orientation, format='A4')
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    pdf.set_font(FONT, 'B', 14)
    pdf.cell(0, 8, clean(title), align='C', **NEXT_LINE)
    if subtitle:
        pdf.set_font(FONT, '', 10)
        pdf.cell(0, 6, clean(subtitle), align='C', **NEXT_LINE)
    pdf.ln(4)
    return pdf


def section(pdf, title):
    pdf.ln(3)
    pdf.set_font(FONT, 'B', 11)
    pdf.cell(0, 7, clean(title), **NEXT_LINE)
    pdf.set_font(FONT, '', 9)


def table(pdf, headers, widths, rows, aligns=None, bold_last=False):
    """Bordered table whose rows grow with wrapped text."""
    aligns = aligns or ['L'] * len(headers)
    bold = FontFace(emphasis='BOLD')
    pdf.set_font(FONT, '', 9)
    with pdf.table(width=sum(widths), col_widths=widths, align='L', line_height=5, text_align=tuple(aligns),
                   headings_style=FontFace(emphasis='BOLD', fill_color=(230, 230, 240))) as grid:
        heading = grid.row()
        for header in headers:
            heading.cell(clean(header), align='C')
        for index, row in enumerate(rows):
            style = bold if bold_last and index == len(rows) - 1 else None
            cells = grid.row()
            for value in row:
                cells.cell(clean(value), style=style)
    if not rows:
        pdf.cell(sum(widths), 6, 'Tidak ada data.', border=1, align='C', **NEXT_LINE)


def paragraph(pdf, text):
    pdf.multi_cell(0, 5, clean(text), **NEXT_LINE)


def output(pdf):
    return bytes(pdf.output())


# Arus kas

def arus_kas_pdf(rows, totals, periode_label, cabang_label, school_name):
    pdf = new_document('Laporan Arus Kas', school_name)
    pdf.set_font(FONT, '', 10)
    pdf.cell(0, 6, f'Periode : {clean(periode_label)}', **NEXT_LINE)
    pdf.cell(0, 6, f'Cabang  : {clean(cabang_label)}', **NEXT_LINE)
    pdf.ln(3)

    widths = [10, 22, 32, 36, 40, 25, 25]
    body = []
    for number, row in enumerate(rows, start=1):
        masuk = format_rupiah(row.nominal) if row.jenis == 'Masuk' else ''
        keluar = format_rupiah(row.nominal) if row.jenis == 'Keluar' else ''
        body.append([number, row.tanggal.strftime('%d/%m/%Y') if row.tanggal else '-', row.cabang,
                     row.nomenklatur, row.keterangan, masuk, keluar])
    table(pdf, ['No', 'Tanggal', 'Cabang', 'Nomenklatur', 'Keterangan', 'Masuk', 'Keluar'], widths, body,
          aligns=['C', 'C', 'L', 'L', 'L', 'R', 'R'])

    pdf.ln(4)
    pdf.set_font(FONT, 'B', 10)
    for label, key in [('Total Pemasukan', 'masuk'), ('Total Pengeluaran', 'keluar'), ('Saldo', 'saldo')]:
        pdf.cell(140, 7, label, border=1)
        pdf.cell(50, 7, format_rupiah(totals[key]), border=1, align='R', **NEXT_LINE)
    return output(pdf)


# Rapor

def rapor_pdf(data, school_name):
    siswa = data['siswa']
    pdf = new_document('LAPORAN PERKEMBANGAN ANAK', school_name)

    pdf.set_font(FONT, '', 10)
    identity_rows = [
        ('Nama', siswa.nama, 'Semester', data['semester']),
        ('Kelas', siswa.kelas, 'NIS', siswa.nis),
        ('Sekolah', siswa.cabang, 'NISN', siswa.nisn),
    ]
    for left, left_value, right, right_value in identity_rows:
        pdf.cell(25, 6, left)
        pdf.cell(70, 6, f': {clean(left_value)}')
        pdf.cell(25, 6, right)
        pdf.cell(70, 6, f': {clean(right_value)}', **NEXT_LINE)

    section(pdf, 'A. Narasi Perkembangan')
    paragraph(pdf, data['narasi'])

    section(pdf, 'B. Tahap Perkembangan')
    table(pdf, ['Domain / Aspek Perkembangan', 'Nilai'], [150, 40],
          [[row['nama'], row['nilai']] for row in data['perkembangan']], aligns=['L', 'C'])

    section(pdf, 'C. Indikator Belajar')
    table(pdf, ['Indikator', 'Sub Indikator', 'Nilai'], [55, 95, 40],
          [[row['group'], row['nama'], row['nilai']] for row in data['indikator']], aligns=['L', 'L', 'C'])

    section(pdf, 'D. Trilogi Main Riang')
    table(pdf, ['Trilogi', 'Sub Trilogi', 'Nilai'], [55, 95, 40],
          [[row['group'], row['nama'], row['nilai']] for row in data['trilogi']], aligns=['L', 'L', 'C'])

    info = data.get('info')
    if info:
        section(pdf, 'E. Pertumbuhan & Kehadiran')
        table(pdf, ['Berat (kg)', 'Tinggi (cm)', 'Lingkar Kepala (cm)', 'Sakit', 'Ijin', 'Alpa'],
              [30, 30, 40, 30, 30, 30],
              [[info.berat_badan, info.tinggi_badan, info.lingkar_kepala, info.sakit, info.ijin, info.alpa]],
              aligns=['C'] * 6)

    pdf.ln(12)
    pdf.set_font(FONT, '', 10)
    pdf.cell(95, 6, 'Mengetahui, Kepala Sekolah', align='C')
    pdf.cell(95, 6, 'Guru Kelas', align='C', **NEXT_LINE)
    pdf.ln(18)
    pdf.set_font(FONT, 'B', 10)
    pdf.cell(95, 6, clean(data['kepala_sekolah']), align='C')
    pdf.cell(95, 6, clean(data['wali_kelas']), align='C', **NEXT_LINE)
    return output(pdf)


def rapor_filename(nama):
    safe = '_'.join((nama or 'siswa').split())
    return f"Rapor_{safe}_{datetime.now().strftime('%Y%m%d%H%M%S')}.pdf"


# Laporan bulanan

def laporan_bulanan_pdf(laporan, ppdb, labels, school_name):
    """``ppdb`` is the summary built by laporan.ppdb_summary, ``labels`` the section labels."""
    pdf = new_document('LAPORAN BULANAN', school_name)

    section(pdf, '1. Informasi Dasar')
    for label, value in [('Semester', laporan.semester), ('Bulan', laporan.bulan), ('Cabang', laporan.cabang),
                         ('Disusun oleh', laporan.disusun_oleh)]:
        pdf.cell(40, 6, label)
        pdf.cell(0, 6, f': {clean(value)}', **NEXT_LINE)

    section(pdf, '2. Ringkasan Eksekutif')
    ringkasan = laporan.ringkasan_eksekutif or {}
    table(pdf, ['Aspek', 'Uraian'], [50, 140],
          [[label, ringkasan.get(key, '')] for key, label in labels['ringkasan']])

    section(pdf, '3. Capaian OKR')
    okr = laporan.capaian_okr or {}
    table(pdf, ['Aspek', 'Capaian'], [80, 110], [[label, okr.get(key, '')] for key, label in labels['okr']])

    section(pdf, '4. Capaian PPDB')
    body = [[row['kelas'], row['target'], row['capaian'], row['sisa'], row['persen']] for row in ppdb['rows']]
    totals = ppdb['total']
    body.append(['Total', totals['target'], totals['capaian'], totals['sisa'], totals['persen']])
    table(pdf, ['Kelas', 'Target', 'Capaian', 'Sisa', '%'], [70, 30, 30, 30, 30], body,
          aligns=['L', 'C', 'C', 'C', 'C'], bold_last=True)

    section(pdf, '5. Keuangan Singkat')
    table(pdf, ['Pos', 'Pengajuan', 'Realisasi', 'Catatan'], [50, 40, 40, 60],
          [[row.get('pos'), row.get('pengajuan'), row.get('realisasi'), row.get('catatan')]
           for row in (laporan.keuangan_singkat or [])])

    section(pdf, '6. Jumlah Siswa')
    jumlah = laporan.jumlah_siswa or {}
    rows = [[kelas, value.get('jumlah', 0), value.get('keterangan', '')] for kelas, value in sorted(jumlah.items())]
    rows.append(['Total', sum(int(value.get('jumlah') or 0) for value in jumlah.values()), ''])
    table(pdf, ['Kelas', 'Jumlah', 'Keterangan'], [70, 30, 90], rows, aligns=['L', 'C', 'L'], bold_last=True)

    section(pdf, '7. Isu Strategis')
    paragraph(pdf, laporan.isu_strategis)

    section(pdf, '8. Rekomendasi Kegiatan')
    paragraph(pdf, laporan.rekomendasi_kegiatan)

    section(pdf, '9. Rencana Agenda')
    agenda = laporan.rencana_agenda or {}
    pdf.cell(0, 6, f"Tema: {clean(agenda.get('tema'))}", **NEXT_LINE)
    paragraph(pdf, agenda.get('deskripsi'))
    table(pdf, ['Tanggal', 'Kegiatan'], [40, 150],
          [[item.get('tanggal'), item.get('kegiatan')] for item in agenda.get('detail', [])])

    section(pdf, '10. Dokumentasi')
    paragraph(pdf, f"{len(laporan.dokumentasi or [])} foto dokumentasi terlampir pada sistem.")
    return output(pdf)
