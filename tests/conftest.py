"""Shared fixtures: an app on an in-memory database, its client and profile factories."""
import pytest

import identity
from app import create_app
from config import TestingConfig
from models import Cabang, Guru, Kelas, Periode, Siswa, db

PASSWORD = 'rahasia123'


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')

    app = create_app(Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def school(app):
    """Two branches (one of them the head office), classes and a default semester."""
    cabang_a = Cabang(nama='Cabang A', kepala_sekolah='Bu Rina')
    pusat = Cabang(nama='Main Riang Pusat')
    db.session.add_all([cabang_a, pusat])
    db.session.add_all([
        Kelas(nama_kelas='TK A', cabang='Cabang A', guru_kelas=['Bu Ani']),
        Kelas(nama_kelas='TK B', cabang='Cabang A', guru_kelas=[]),
        Kelas(nama_kelas='TK A', cabang='Main Riang Pusat', guru_kelas=[]),
    ])
    semester = Periode(nama_periode='Semester 1 2024/2025', is_default=True)
    db.session.add(semester)
    db.session.commit()
    return {'cabang_a': cabang_a, 'pusat': pusat, 'semester': semester}


@pytest.fixture
def make_guru(app):
    def factory(nama, email, role='Guru', cabang='Cabang A', password=PASSWORD):
        account = identity.create_account(email, password, display_name=nama, commit=False)
        guru = Guru(uid=account.uid, nama=nama, email=account.email, role=role, cabang=cabang)
        db.session.add(guru)
        db.session.commit()
        return guru
    return factory


@pytest.fixture
def make_siswa(app):
    def factory(nama, email, kelas='TK A', cabang='Cabang A', password=PASSWORD):
        account = identity.create_account(email, password, display_name=nama, commit=False)
        siswa = Siswa(uid=account.uid, nama=nama, email=account.email, kelas=kelas, cabang=cabang)
        db.session.add(siswa)
        db.session.commit()
        return siswa
    return factory


@pytest.fixture
def login(client):
    def do_login(email, password=PASSWORD):
        client.get('/logout')
        return client.post('/login', data={'email': email, 'password': password})
    return do_login


@pytest.fixture
def admin(make_guru, login):
    guru = make_guru('Administrator', 'admin@mainriang.sch.id', role='Admin', cabang=None)
    login(guru.email)
    return guru
