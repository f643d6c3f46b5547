import identity
from access import KEPALA_SEKOLAH, resolve_user
from crud import scope_to_branch
from models import Account, Cabang, Guru, Kelas, LogAktivitas, Periode, db


def test_cabang_add_edit_delete(client, admin):
    response = client.post('/pengaturan/cabang/add', data={
        'nama': 'Cabang B', 'kepala_sekolah': 'Bu Sari', 'alamat': 'Jl. Melati 2', 'status': 'Aktif'})
    assert response.status_code == 302

    cabang = Cabang.query.filter_by(nama='Cabang B').one()
    assert cabang.kepala_sekolah == 'Bu Sari'
    assert LogAktivitas.query.filter_by(aktivitas='Menambah Cabang: Cabang B').count() == 1

    response = client.post(f'/pengaturan/cabang/{cabang.id}/edit', data={
        'nama': 'Cabang B Baru', 'kepala_sekolah': 'Bu Sari', 'alamat': '', 'status': 'Nonaktif'})
    assert response.status_code == 302
    assert cabang.nama == 'Cabang B Baru'
    assert cabang.status == 'Nonaktif'

    listing = client.get('/pengaturan/cabang')
    assert b'Cabang B Baru' in listing.data

    response = client.post(f'/pengaturan/cabang/{cabang.id}/delete')
    assert response.status_code == 302
    assert Cabang.query.count() == 0


def test_cabang_requires_name(client, admin):
    response = client.post('/pengaturan/cabang/add', data={'nama': '', 'status': 'Aktif'})
    assert response.status_code == 200
    assert Cabang.query.count() == 0


def test_edit_missing_row_is_404(client, admin):
    assert client.get('/pengaturan/cabang/999/edit').status_code == 404


def test_kelas_add_with_teachers(client, school, admin, make_guru):
    make_guru('Bu Ani', 'ani@mainriang.sch.id')
    response = client.post('/pengaturan/kelas/add', data={
        'nama_kelas': 'Playgroup', 'cabang': 'Cabang A', 'jenjang_kelas': 'PG', 'guru_kelas': ['Bu Ani']})
    assert response.status_code == 302

    kelas = Kelas.query.filter_by(nama_kelas='Playgroup').one()
    assert kelas.cabang == 'Cabang A'
    assert kelas.guru_kelas == ['Bu Ani']
    assert kelas.has_teacher('Bu Ani')


def test_kepala_sekolah_only_lists_own_branch_classes(app, school, make_guru):
    guru = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    user = resolve_user(identity.get_by_uid(guru.uid))
    rows = scope_to_branch(Kelas.query, user).all()
    assert {k.cabang for k in rows} == {'Cabang A'}
    assert len(rows) == 2


def test_kepala_sekolah_cannot_edit_other_branch_classes(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    pusat = Kelas.query.filter_by(cabang='Main Riang Pusat').one()
    login(ks.email)

    assert client.get(f'/pengaturan/kelas/{pusat.id}/edit').status_code == 404
    assert client.post(f'/pengaturan/kelas/{pusat.id}/delete').status_code == 404
    assert db.session.get(Kelas, pusat.id) is not None


def test_kepala_sekolah_cannot_move_class_to_other_branch(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    kelas = Kelas.query.filter_by(nama_kelas='TK B', cabang='Cabang A').one()
    login(ks.email)

    response = client.post(f'/pengaturan/kelas/{kelas.id}/edit', data={
        'nama_kelas': 'TK B', 'cabang': 'Main Riang Pusat', 'jenjang_kelas': ''})
    assert response.status_code == 200
    db.session.refresh(kelas)
    assert kelas.cabang == 'Cabang A'


def test_only_admin_grants_admin_panel_roles(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    login(ks.email)

    response = client.post(f'/data/guru/{ks.id}/edit', data={
        'nama': 'Bu Rina', 'email': 'rina@mainriang.sch.id', 'password': '', 'role': 'Admin',
        'status': 'Aktif', 'cabang': 'Cabang A'})
    assert response.status_code == 200
    db.session.refresh(ks)
    assert ks.role == KEPALA_SEKOLAH

    response = client.post(f'/data/guru/{ks.id}/edit', data={
        'nama': 'Bu Rina Sari', 'email': 'rina@mainriang.sch.id', 'password': '', 'role': KEPALA_SEKOLAH,
        'status': 'Aktif', 'cabang': 'Cabang A'})
    assert response.status_code == 302
    assert ks.nama == 'Bu Rina Sari'


def test_only_one_default_periode(client, school, admin):
    client.post('/pengaturan/periode/add', data={'nama_periode': 'Semester 2 2024/2025', 'is_default': 'y'})
    new = Periode.query.filter_by(nama_periode='Semester 2 2024/2025').one()
    assert new.is_default
    assert Periode.default().id == new.id
    assert Periode.query.filter_by(is_default=True).count() == 1

    client.post(f"/pengaturan/periode/{school['semester'].id}/default")
    db.session.refresh(new)
    assert not new.is_default
    assert Periode.default().id == school['semester'].id


def test_guru_profile_owns_login_account(client, school, admin):
    response = client.post('/data/guru/add', data={
        'nama': 'Bu Ani', 'email': 'Ani@MainRiang.sch.id', 'password': 'rahasia123', 'role': 'Guru',
        'status': 'Aktif', 'cabang': 'Cabang A'})
    assert response.status_code == 302

    guru = Guru.query.filter_by(nama='Bu Ani').one()
    assert guru.email == 'ani@mainriang.sch.id'
    assert identity.authenticate('ani@mainriang.sch.id', 'rahasia123').uid == guru.uid

    client.post(f'/data/guru/{guru.id}/delete')
    assert Guru.query.filter_by(nama='Bu Ani').count() == 0
    assert Account.query.filter_by(email='ani@mainriang.sch.id').count() == 0


def test_new_profile_needs_password(client, school, admin):
    client.post('/data/guru/add', data={
        'nama': 'Bu Ani', 'email': 'ani@mainriang.sch.id', 'password': '', 'role': 'Guru',
        'status': 'Aktif', 'cabang': 'Cabang A'})
    assert Guru.query.filter_by(nama='Bu Ani').count() == 0
    assert identity.get_by_email('ani@mainriang.sch.id') is None
