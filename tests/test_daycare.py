from datetime import date

from werkzeug.datastructures import MultiDict

from daycare import hasil_from_form, split_options
from models import DaycareAktivitas, DaycareLaporanHarian, DaycareSubAktivitas, Kelas, db


def test_split_options():
    assert split_options(' Habis, Setengah ,, Tidak mau ') == ['Habis', 'Setengah', 'Tidak mau']
    assert split_options(None) == []


def test_new_activities_are_appended_last(client, admin):
    client.post('/daycare/aktivitas/add', data={'nama': 'Makan Siang', 'urutan': '5'})
    client.post('/daycare/aktivitas/add', data={'nama': 'Tidur Siang', 'urutan': ''})

    tidur = DaycareAktivitas.query.filter_by(nama='Tidur Siang').one()
    assert tidur.urutan == 6

    client.post('/daycare/sub-aktivitas/add', data={
        'aktivitas_id': str(tidur.id), 'deskripsi': 'Lama tidur', 'opsi_jawaban': '< 1 jam, 1-2 jam, > 2 jam'})
    sub = DaycareSubAktivitas.query.one()
    assert sub.opsi_jawaban == ['< 1 jam', '1-2 jam', '> 2 jam']
    assert sub.urutan == 1


def test_deleting_activity_removes_sub_activities(client, admin):
    aktivitas = DaycareAktivitas(nama='Makan Siang', urutan=1)
    db.session.add(aktivitas)
    db.session.flush()
    db.session.add(DaycareSubAktivitas(aktivitas_id=aktivitas.id, deskripsi='Porsi', opsi_jawaban=['Habis']))
    db.session.commit()

    client.post(f'/daycare/aktivitas/{aktivitas.id}/delete')
    assert DaycareAktivitas.query.count() == 0
    assert DaycareSubAktivitas.query.count() == 0


def test_hasil_keeps_only_allowed_options(app):
    sub = DaycareSubAktivitas(id=7, aktivitas_id=1, deskripsi='Porsi', opsi_jawaban=['Habis', 'Setengah'])
    formdata = MultiDict([('hasil_7', 'Habis'), ('hasil_7', 'Dimakan kucing'), ('hasil_8', 'Habis')])
    assert hasil_from_form(formdata, [sub]) == {'7': ['Habis']}


def test_daily_report(client, school, admin, make_siswa):
    siswa = make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    kelas = Kelas.query.filter_by(nama_kelas='TK A', cabang='Cabang A').one()
    aktivitas = DaycareAktivitas(nama='Makan Siang', urutan=1)
    db.session.add(aktivitas)
    db.session.flush()
    sub = DaycareSubAktivitas(aktivitas_id=aktivitas.id, deskripsi='Porsi', opsi_jawaban=['Habis', 'Setengah'],
                              urutan=1)
    db.session.add(sub)
    db.session.commit()

    response = client.post('/daycare/laporan-harian', data={
        'tanggal': date.today().isoformat(), 'cabang_id': str(school['cabang_a'].id),
        'kelas_id': str(kelas.id), 'siswa_id': str(siswa.id), f'hasil_{sub.id}': 'Habis'})
    assert response.status_code == 302

    report = DaycareLaporanHarian.query.one()
    assert report.siswa_id == siswa.id
    assert report.hasil == {str(sub.id): ['Habis']}

    page = client.get('/daycare/laporan-harian')
    assert page.status_code == 200
    assert b'Adik Bima' in page.data

    client.post(f'/daycare/laporan-harian/{report.id}/delete')
    assert DaycareLaporanHarian.query.count() == 0
