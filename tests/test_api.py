from datetime import date

import identity
from access import DIREKTUR, KEPALA_SEKOLAH
from models import Account, Guru, IndikatorGroup, Kelas, Pengajuan, Pengumuman, SubIndikator, db


def test_kelas_by_branch_name_and_id(client, school, admin):
    response = client.get('/api/kelas?cabang=Cabang+A')
    assert [item['nama'] for item in response.get_json()] == ['TK A', 'TK B']

    response = client.get(f"/api/kelas?cabang_id={school['pusat'].id}")
    assert [item['nama'] for item in response.get_json()] == ['TK A']

    assert client.get('/api/kelas').get_json() == []


def test_siswa_by_class(client, school, admin, make_siswa):
    make_siswa('Adik Bima', 'bima@mainriang.sch.id')
    make_siswa('Adik Citra', 'citra@mainriang.sch.id', kelas='TK B')
    make_siswa('Adik Dani', 'dani@mainriang.sch.id', cabang='Main Riang Pusat')

    kelas = Kelas.query.filter_by(nama_kelas='TK A', cabang='Cabang A').one()
    response = client.get(f'/api/siswa?kelas_id={kelas.id}')
    assert [item['nama'] for item in response.get_json()] == ['Adik Bima']

    response = client.get('/api/siswa?kelas=TK+A&cabang=Main+Riang+Pusat')
    assert [item['nama'] for item in response.get_json()] == ['Adik Dani']

    assert client.get('/api/siswa').get_json() == []


def test_sub_indikator_labels(client, admin):
    group = IndikatorGroup(nama='Nilai Agama dan Moral')
    db.session.add(group)
    db.session.flush()
    db.session.add_all([SubIndikator(group_id=group.id, kode='1.2', deskripsi='Berdoa sebelum makan'),
                        SubIndikator(group_id=group.id, kode='1.1', deskripsi='Mengucap salam')])
    db.session.commit()

    response = client.get(f'/api/sub-indikator?group_id={group.id}')
    assert [item['nama'] for item in response.get_json()] == ['1.1 - Mengucap salam', '1.2 - Berdoa sebelum makan']


def test_badges_for_kepala_sekolah(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    db.session.add_all([
        Pengajuan(tanggal=date.today(), pengaju='Bu Ani', cabang='Cabang A', barang='Krayon', total=1,
                  status='Menunggu KS'),
        Pengajuan(tanggal=date.today(), pengaju='Pak Budi', cabang='Main Riang Pusat', barang='Kursi', total=1,
                  status='Menunggu Direktur'),
        Pengumuman(cabang='Cabang A', judul='Libur'),
        Pengumuman(cabang='', judul='Rapat Yayasan'),
        Pengumuman(cabang='Main Riang Pusat', judul='Lomba'),
    ])
    db.session.commit()
    login(ks.email)

    assert client.get('/api/badges').get_json() == {'pengajuan': 1, 'pengumuman': 2}


def test_badges_for_direktur(client, school, make_guru, login):
    direktur = make_guru('Pak Dedi', 'dedi@mainriang.sch.id', role=DIREKTUR, cabang=None)
    db.session.add(Pengajuan(tanggal=date.today(), pengaju='Pak Budi', cabang='Main Riang Pusat', barang='Kursi',
                             total=1, status='Menunggu Direktur'))
    db.session.commit()
    login(direktur.email)

    assert client.get('/api/badges').get_json()['pengajuan'] == 1


def test_admin_update_user_syncs_profile_email(client, school, admin, make_guru):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    response = client.post('/api/admin/update-user', json={
        'uid': guru.uid, 'email': 'ani.baru@mainriang.sch.id', 'password': 'gantibaru1'})
    assert response.status_code == 200
    assert response.get_json() == {'success': True}

    assert identity.authenticate('ani.baru@mainriang.sch.id', 'gantibaru1') is not None
    assert db.session.get(Guru, guru.id).email == 'ani.baru@mainriang.sch.id'


def test_admin_update_user_requires_uid(client, admin):
    response = client.post('/api/admin/update-user', json={'email': 'x@mainriang.sch.id'})
    assert response.status_code == 400


def test_admin_update_unknown_user(client, admin):
    response = client.post('/api/admin/update-user', json={'uid': 'missing'})
    assert response.status_code == 500
    assert 'error' in response.get_json()


def test_admin_delete_user(client, school, admin, make_guru):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    response = client.post('/api/admin/delete-user', json={'uid': guru.uid})
    assert response.get_json() == {'success': True, 'message': 'User Auth deleted'}
    assert Account.query.filter_by(uid=guru.uid).count() == 0

    response = client.post('/api/admin/delete-user', json={'uid': guru.uid})
    assert response.get_json() == {'success': True, 'message': 'User already deleted'}

    response = client.post('/api/admin/delete-user', json={'email': 'tidak.ada@mainriang.sch.id'})
    assert response.get_json() == {'success': True, 'message': 'User not found, assumed deleted'}

    assert client.post('/api/admin/delete-user', json={}).status_code == 400


def test_teacher_cannot_use_admin_endpoints(client, school, make_guru, login):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    login(guru.email)
    response = client.post('/api/admin/delete-user', json={'uid': guru.uid})
    assert response.status_code == 403
    assert response.get_json() == {'error': 'Anda tidak memiliki akses ke halaman ini.'}


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'
