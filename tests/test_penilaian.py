from datetime import date

from models import (IndikatorGroup, InfoTambahanRapor, InfoTambahanSiswa, KategoriPenilaian, Kelas, KriteriaNilai,
                    NilaiIndikator, NilaiTrilogi, SubIndikator, db)
from penilaian import KATEGORI_INDIKATOR, rapor_data
from reports_pdf import rapor_filename, rapor_pdf


def add_scores(siswa, semester):
    kategori = KategoriPenilaian(nama=KATEGORI_INDIKATOR)
    db.session.add(kategori)
    db.session.flush()
    db.session.add_all([
        KriteriaNilai(nama='Berkembang Sesuai Harapan (BSH)', nilai=3, kategori_id=kategori.id),
        KriteriaNilai(nama='Mulai Berkembang (MB)', nilai=2, kategori_id=kategori.id),
        NilaiIndikator(tanggal=date(2024, 8, 5), siswa_id=siswa.id, nama_siswa=siswa.nama,
                       semester_id=semester.id, nama_indikator='Nilai Agama dan Moral',
                       nama_sub_indikator='Berdoa sebelum makan', nilai=3),
        NilaiTrilogi(tanggal=date(2024, 8, 6), siswa_id=siswa.id, nama_siswa=siswa.nama,
                     semester_id=semester.id, nama_trilogi='Mandiri', nama_sub_trilogi='Merapikan mainan',
                     nilai=2),
    ])
    info = InfoTambahanRapor(cabang='Cabang A', kelas='TK A', semester=semester.nama_periode)
    db.session.add(info)
    db.session.flush()
    db.session.add(InfoTambahanSiswa(info_tambahan_id=info.id, siswa_id=siswa.id, berat_badan=16.5,
                                     tinggi_badan=104.0, sakit=1))
    db.session.commit()


def test_rapor_data(school, make_guru, make_siswa):
    make_guru('Bu Rina', 'rina@mainriang.sch.id', role='Kepala Sekolah')
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    add_scores(siswa, school['semester'])

    data = rapor_data(siswa, school['semester'].id)
    assert data['semester'] == 'Semester 1 2024/2025'
    assert data['indikator'] == [{'group': 'Nilai Agama dan Moral', 'nama': 'Berdoa sebelum makan',
                                  'nilai': 'Berkembang Sesuai Harapan (BSH)'}]
    # No criteria defined for trilogy scores: the raw value is shown
    assert data['trilogi'][0]['nilai'] == 2
    assert data['perkembangan'] == []
    assert data['info'].berat_badan == 16.5
    assert data['kepala_sekolah'] == 'Bu Rina'
    assert data['wali_kelas'] == 'Bu Ani'
    assert 'Adik Bima' in data['narasi']


def test_rapor_data_with_custom_narasi(school, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    data = rapor_data(siswa, school['semester'].id, 'Ananda sangat aktif.')
    assert data['narasi'] == 'Ananda sangat aktif.'
    assert data['info'] is None


def test_rapor_pdf(school, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    add_scores(siswa, school['semester'])
    content = rapor_pdf(rapor_data(siswa, school['semester'].id), 'Main Riang Islamic Preschool')
    assert content.startswith(b'%PDF')
    assert rapor_filename('Adik Bima').endswith('.pdf')


def test_rapor_pdf_route(client, school, admin, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    response = client.post('/penilaian/rapor/pdf', data={
        'siswa_id': siswa.id, 'semester_id': school['semester'].id, 'narasi': 'Ananda sangat aktif.'})
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')


def test_rapor_pdf_route_needs_narasi(client, school, admin, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    response = client.post('/penilaian/rapor/pdf', data={
        'siswa_id': siswa.id, 'semester_id': school['semester'].id, 'narasi': '  '})
    assert response.status_code == 302


def test_teacher_only_prints_own_students(client, school, make_guru, make_siswa, login):
    guru = make_guru('Bu Budi', 'budi@mainriang.sch.id')
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    login(guru.email)
    response = client.post('/penilaian/rapor/pdf', data={
        'siswa_id': siswa.id, 'semester_id': school['semester'].id, 'narasi': 'Ananda sangat aktif.'})
    assert response.status_code == 302


def score_form(school, kelas, siswa, group, sub):
    return {'tanggal': '2024-08-05', 'cabang_id': str(school['cabang_a'].id), 'kelas_id': str(kelas.id),
            'siswa_id': str(siswa.id), 'semester_id': str(school['semester'].id), 'nilai': '3',
            'indikator_id': str(group.id), 'sub_indikator_id': str(sub.id)}


def add_indikator():
    group = IndikatorGroup(nama='Nilai Agama dan Moral')
    db.session.add(group)
    db.session.flush()
    sub = SubIndikator(group_id=group.id, kode='NAM.1', deskripsi='Berdoa sebelum makan')
    db.session.add(sub)
    db.session.commit()
    return group, sub


def test_score_form_stores_names(client, school, admin, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    kelas = Kelas.query.filter_by(nama_kelas='TK A', cabang='Cabang A').one()
    group, sub = add_indikator()

    response = client.post('/penilaian/nilai-indikator/add', data=score_form(school, kelas, siswa, group, sub))
    assert response.status_code == 302

    nilai = NilaiIndikator.query.one()
    assert nilai.nilai == 3
    assert nilai.nama_cabang == 'Cabang A'
    assert nilai.nama_kelas == 'TK A'
    assert nilai.nama_siswa == 'Adik Bima'
    assert nilai.nama_semester == 'Semester 1 2024/2025'
    assert nilai.nama_indikator == 'Nilai Agama dan Moral'
    assert nilai.nama_sub_indikator == 'NAM.1 - Berdoa sebelum makan'


def test_score_form_rejects_sub_item_of_other_group(client, school, admin, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    kelas = Kelas.query.filter_by(nama_kelas='TK A', cabang='Cabang A').one()
    group, sub = add_indikator()
    other = IndikatorGroup(nama='Fisik Motorik')
    db.session.add(other)
    db.session.commit()

    response = client.post('/penilaian/nilai-indikator/add', data=score_form(school, kelas, siswa, other, sub))
    assert response.status_code == 200
    assert NilaiIndikator.query.count() == 0


def test_teacher_cannot_touch_other_branch_scores(client, school, make_guru, make_siswa, login):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    row = NilaiIndikator(tanggal=date.today(), nama_cabang='Main Riang Pusat', nama_kelas='TK A',
                         nama_siswa='Adik Dewa', semester_id=school['semester'].id, nilai=2)
    db.session.add(row)
    db.session.commit()
    login(guru.email)

    assert b'Adik Dewa' not in client.get('/penilaian/nilai-indikator').data
    assert client.get(f'/penilaian/nilai-indikator/{row.id}/edit').status_code == 404
    assert client.post(f'/penilaian/nilai-indikator/{row.id}/delete').status_code == 404
    assert NilaiIndikator.query.count() == 1


def test_teacher_cannot_score_other_branch(client, school, make_guru, make_siswa, login):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    siswa = make_siswa('Adik Dewa', 'dewa@mainriang.sch.id', cabang='Main Riang Pusat')
    kelas = Kelas.query.filter_by(nama_kelas='TK A', cabang='Main Riang Pusat').one()
    group, sub = add_indikator()
    login(guru.email)

    data = score_form(school, kelas, siswa, group, sub)
    data['cabang_id'] = str(school['pusat'].id)
    response = client.post('/penilaian/nilai-indikator/add', data=data)
    assert response.status_code == 200
    assert NilaiIndikator.query.count() == 0


def test_info_tambahan_detail_upserts_one_row_per_student(client, school, admin, make_siswa):
    bima = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    citra = make_siswa('Adik Citra', 'citra@mainriang.sch.id')
    make_siswa('Adik Dewa', 'dewa@mainriang.sch.id', kelas='TK B')
    info = InfoTambahanRapor(cabang='Cabang A', kelas='TK A', semester='Semester 1 2024/2025')
    db.session.add(info)
    db.session.flush()
    db.session.add(InfoTambahanSiswa(info_tambahan_id=info.id, siswa_id=bima.id, berat_badan=15.0))
    db.session.commit()

    response = client.post(f'/penilaian/info-tambahan/{info.id}/detail', data={
        f'berat_badan_{bima.id}': '16,5', f'tinggi_badan_{bima.id}': '104', f'sakit_{bima.id}': '2',
        f'berat_badan_{citra.id}': '14', f'ijin_{citra.id}': 'satu'})
    assert response.status_code == 302

    rows = {row.siswa_id: row for row in InfoTambahanSiswa.query.all()}
    assert set(rows) == {bima.id, citra.id}
    assert rows[bima.id].berat_badan == 16.5
    assert rows[bima.id].tinggi_badan == 104.0
    assert rows[bima.id].sakit == 2
    assert rows[bima.id].ijin == 0
    assert rows[citra.id].berat_badan == 14.0
    assert rows[citra.id].tinggi_badan is None
    assert rows[citra.id].ijin == 0
