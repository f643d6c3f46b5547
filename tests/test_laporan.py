import os
from io import BytesIO

from werkzeug.datastructures import MultiDict

import storage
from access import KEPALA_SEKOLAH
from laporan import OKR_ASPEK, RINGKASAN_ASPEK, ppdb_summary, prefill_sections, sections_from_form
from models import LaporanBulanan
from reports_pdf import laporan_bulanan_pdf, new_document, table


def test_prefill_counts_students_per_class(school, make_siswa):
    make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    make_siswa('Adik Citra', 'citra@mainriang.sch.id')
    make_siswa('Adik Dani', 'dani@mainriang.sch.id', kelas='TK B')

    sections = prefill_sections('Cabang A')
    assert sections['jumlah_siswa'] == {'TK A': {'jumlah': 2, 'keterangan': ''},
                                        'TK B': {'jumlah': 1, 'keterangan': ''}}
    assert sections['capaian_ppdb'] == {'TK A': {'target': '', 'capaian': ''},
                                        'TK B': {'target': '', 'capaian': ''}}


def test_ppdb_summary():
    summary = ppdb_summary({'TK B': {'target': '0', 'capaian': ''},
                            'TK A': {'target': '10', 'capaian': '4'}})
    assert summary['rows'] == [
        {'kelas': 'TK A', 'target': 10, 'capaian': 4, 'sisa': 6, 'persen': '40.0'},
        {'kelas': 'TK B', 'target': 0, 'capaian': 0, 'sisa': 0, 'persen': '0.0'},
    ]
    assert summary['total'] == {'kelas': 'Total', 'target': 10, 'capaian': 4, 'sisa': 6, 'persen': '40.0'}


def test_sections_from_form_drops_empty_rows():
    formdata = MultiDict([
        ('ringkasan_keuangan', ' Sehat '),
        ('okr_branding', 'Dua unggahan per minggu'),
        ('ppdb_kelas', 'TK A'), ('ppdb_target', '10'), ('ppdb_capaian', '7'),
        ('keu_pos', 'ATK'), ('keu_pengajuan', '500000'), ('keu_realisasi', '450000'), ('keu_catatan', ''),
        ('keu_pos', ''), ('keu_pengajuan', ''), ('keu_realisasi', ''), ('keu_catatan', ''),
        ('js_kelas', 'TK A'), ('js_jumlah', '12'), ('js_keterangan', 'Penuh'),
        ('agenda_tema', 'Hari Kartini'),
        ('agenda_tanggal', '2024-04-21'), ('agenda_kegiatan', 'Parade baju adat'),
    ])
    sections = sections_from_form(formdata)

    assert sections['ringkasan_eksekutif']['keuangan'] == 'Sehat'
    assert sections['ringkasan_eksekutif']['ppdb'] == ''
    assert set(sections['capaian_okr']) == {key for key, _ in OKR_ASPEK}
    assert sections['capaian_ppdb'] == {'TK A': {'target': '10', 'capaian': '7'}}
    assert sections['keuangan_singkat'] == [
        {'pos': 'ATK', 'pengajuan': '500000', 'realisasi': '450000', 'catatan': ''}]
    assert sections['jumlah_siswa'] == {'TK A': {'jumlah': 12, 'keterangan': 'Penuh'}}
    assert sections['rencana_agenda'] == {'tema': 'Hari Kartini', 'deskripsi': '',
                                          'detail': [{'tanggal': '2024-04-21', 'kegiatan': 'Parade baju adat'}]}


def test_laporan_bulanan_pdf(app):
    laporan = LaporanBulanan(semester='Semester 1 2024/2025', bulan='Januari', cabang='Cabang A',
                             disusun_oleh='Bu Rina', ringkasan_eksekutif={'keuangan': 'Sehat'},
                             capaian_ppdb={'TK A': {'target': '10', 'capaian': '4'}},
                             jumlah_siswa={'TK A': {'jumlah': 12, 'keterangan': ''}},
                             rencana_agenda={'tema': 'Hari Kartini', 'detail': []})
    labels = {'ringkasan': RINGKASAN_ASPEK, 'okr': OKR_ASPEK}
    content = laporan_bulanan_pdf(laporan, ppdb_summary(laporan.capaian_ppdb), labels, 'Main Riang')
    assert content.startswith(b'%PDF')


def report_form(school, **extra):
    data = {
        'semester_id': str(school['semester'].id),
        'bulan': 'Januari',
        'cabang_id': str(school['cabang_a'].id),
        'ringkasan_capaian_pembelajaran': 'Tema binatang selesai',
        'ppdb_kelas': 'TK A', 'ppdb_target': '10', 'ppdb_capaian': '4',
        'js_kelas': 'TK A', 'js_jumlah': '12', 'js_keterangan': '',
        'isu_strategis': 'Guru pengganti',
    }
    data.update(extra)
    return data


def test_create_view_and_download_report(client, school, admin):
    response = client.get(f"/laporan/bulanan/add?cabang_id={school['cabang_a'].id}")
    assert response.status_code == 200
    assert b'TK B' in response.data

    data = report_form(school, dokumentasi_1=(BytesIO(b'\x89PNG foto'), 'kegiatan.png'))
    response = client.post('/laporan/bulanan/add', data=data, content_type='multipart/form-data')
    assert response.status_code == 302

    laporan = LaporanBulanan.query.one()
    assert laporan.cabang == 'Cabang A'
    assert laporan.semester == 'Semester 1 2024/2025'
    assert laporan.disusun_oleh == 'Administrator'
    assert laporan.capaian_ppdb == {'TK A': {'target': '10', 'capaian': '4'}}
    assert len(laporan.dokumentasi) == 1
    assert storage.exists(laporan.dokumentasi[0])

    assert client.get(f'/laporan/bulanan/{laporan.id}').status_code == 200

    response = client.get(f'/laporan/bulanan/{laporan.id}/pdf')
    assert response.status_code == 200
    assert response.data.startswith(b'%PDF')
    assert 'Laporan_Bulanan_Cabang_A_Januari.pdf' in response.headers['Content-Disposition']


def test_edit_replaces_and_removes_photos(client, school, admin):
    data = report_form(school, dokumentasi_1=(BytesIO(b'\x89PNG satu'), 'satu.png'),
                       dokumentasi_2=(BytesIO(b'\x89PNG dua'), 'dua.png'))
    client.post('/laporan/bulanan/add', data=data, content_type='multipart/form-data')
    laporan = LaporanBulanan.query.one()
    first, second = laporan.dokumentasi

    data = report_form(school, bulan='Februari', dokumentasi_1=(BytesIO(b'\x89PNG baru'), 'baru.png'),
                       hapus_dokumentasi_2='1')
    response = client.post(f'/laporan/bulanan/{laporan.id}/edit', data=data, content_type='multipart/form-data')
    assert response.status_code == 302

    assert laporan.bulan == 'Februari'
    assert len(laporan.dokumentasi) == 1
    assert laporan.dokumentasi[0].endswith('_baru.png')
    assert not storage.exists(first)
    assert not storage.exists(second)

    client.post(f'/laporan/bulanan/{laporan.id}/delete')
    assert LaporanBulanan.query.count() == 0


def test_report_rejects_invalid_month(client, school, admin):
    response = client.post('/laporan/bulanan/add', data=report_form(school, bulan='Smarch'))
    assert response.status_code == 200
    assert LaporanBulanan.query.count() == 0


def test_kepala_sekolah_limited_to_own_branch(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    login(ks.email)

    response = client.post('/laporan/bulanan/add', data=report_form(school, cabang_id=str(school['pusat'].id)))
    assert response.status_code == 200
    assert LaporanBulanan.query.count() == 0

    client.post('/laporan/bulanan/add', data=report_form(school))
    laporan = LaporanBulanan.query.one()
    assert laporan.disusun_oleh == 'Bu Rina'


def test_failed_save_removes_new_photos(client, school, admin):
    data = report_form(school, dokumentasi_1=(BytesIO(b'\x89PNG foto'), 'kegiatan.png'),
                       dokumentasi_2=(BytesIO(b'MZ'), 'bukan-foto.exe'))
    response = client.post('/laporan/bulanan/add', data=data, content_type='multipart/form-data')
    assert response.status_code == 200
    assert LaporanBulanan.query.count() == 0

    folder = storage.full_path('laporan')
    assert not os.path.exists(folder) or os.listdir(folder) == []


def test_pdf_table_rows_grow_with_long_text():
    def table_height(text):
        pdf = new_document('Laporan Bulanan')
        start = pdf.get_y()
        table(pdf, ['Aspek', 'Uraian'], [50, 140], [['Akademik', text]])
        return pdf.get_y() - start

    long_text = 'Kegiatan belajar berjalan lancar dan seluruh guru hadir tepat waktu setiap hari. ' * 4
    assert table_height(long_text) > table_height('Baik')
