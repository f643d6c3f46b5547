from datetime import date
from io import BytesIO

import pytest
from flask import request

import identity
import keuangan
import storage
from access import DIREKTUR, KEPALA_SEKOLAH, resolve_user
from errors import WorkflowError
from models import ArusKas, Pengajuan, db
from reports_pdf import arus_kas_pdf


def user_for(guru):
    return resolve_user(identity.get_by_uid(guru.uid))


def add_pengajuan(cabang='Cabang A', status=keuangan.MENUNGGU_KS, user_uid=None, total=150000.0, pengaju='Bu Ani',
                  tanggal=None, **extra):
    item = Pengajuan(tanggal=tanggal or date.today(), pengaju=pengaju, cabang=cabang, barang='Krayon',
                     harga_satuan=total, qty=1, total=total, status=status, user_uid=user_uid, **extra)
    db.session.add(item)
    db.session.commit()
    return item


def test_initial_status_depends_on_head_office(app):
    assert keuangan.initial_status('Cabang A') == keuangan.MENUNGGU_KS
    assert keuangan.initial_status('Main Riang Pusat') == keuangan.MENUNGGU_DIREKTUR


def test_two_step_approval(school, make_guru):
    ks = user_for(make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH))
    direktur = user_for(make_guru('Pak Dedi', 'dedi@mainriang.sch.id', role=DIREKTUR, cabang=None))
    item = add_pengajuan()

    with pytest.raises(WorkflowError):
        keuangan.approve(item, direktur)

    assert keuangan.approve(item, ks) == keuangan.MENUNGGU_DIREKTUR
    with pytest.raises(WorkflowError):
        keuangan.approve(item, ks)

    assert keuangan.approve(item, direktur) == keuangan.DISETUJUI
    with pytest.raises(WorkflowError):
        keuangan.reject(item, direktur)


def test_kepala_sekolah_only_acts_on_own_branch(school, make_guru):
    ks = user_for(make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH))
    item = add_pengajuan(cabang='Cabang Lain')
    with pytest.raises(WorkflowError):
        keuangan.check_step(item, ks)


def test_reject(school, make_guru):
    ks = user_for(make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH))
    item = add_pengajuan()
    assert keuangan.reject(item, ks) == keuangan.DITOLAK


def test_scope_pengajuan(school, make_guru):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    ks = user_for(make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH))
    direktur = user_for(make_guru('Pak Dedi', 'dedi@mainriang.sch.id', role=DIREKTUR, cabang=None))
    add_pengajuan(user_uid=guru.uid)
    add_pengajuan(user_uid='someone-else')
    add_pengajuan(cabang='Main Riang Pusat', status=keuangan.MENUNGGU_DIREKTUR)

    assert keuangan.scope_pengajuan(Pengajuan.query, user_for(guru)).count() == 1
    assert keuangan.scope_pengajuan(Pengajuan.query, ks).count() == 2
    assert keuangan.scope_pengajuan(Pengajuan.query, direktur).count() == 3

    assert len(keuangan.pending_for(ks)) == 2
    assert len(keuangan.pending_for(direktur)) == 1
    assert keuangan.pending_for(user_for(guru)) == []


def test_teacher_submits_pengajuan(client, school, make_guru, login):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    login(guru.email)

    response = client.post('/keuangan/pengajuan/add', data={
        'tanggal': date.today().isoformat(), 'cabang': 'Cabang A', 'nomenklatur': '',
        'barang': 'Kertas Origami', 'harga_satuan': '2500', 'qty': '10'})
    assert response.status_code == 302

    item = Pengajuan.query.one()
    assert item.total == 25000
    assert item.status == keuangan.MENUNGGU_KS
    assert item.pengaju == 'Bu Ani'
    assert item.user_uid == guru.uid

    listing = client.get('/keuangan/pengajuan')
    assert listing.status_code == 200
    assert b'Kertas Origami' in listing.data


def test_approve_route(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    item = add_pengajuan()
    login(ks.email)

    response = client.post(f'/keuangan/pengajuan/{item.id}/approve')
    assert response.status_code == 302
    assert item.status == keuangan.MENUNGGU_DIREKTUR


def test_teacher_cannot_approve(client, school, make_guru, login):
    guru = make_guru('Bu Ani', 'ani@mainriang.sch.id')
    item = add_pengajuan(user_uid=guru.uid)
    login(guru.email)
    assert client.post(f'/keuangan/pengajuan/{item.id}/approve').status_code == 403
    assert item.status == keuangan.MENUNGGU_KS


def test_record_realisasi_mirrors_cash_outflow(school):
    item = add_pengajuan(status=keuangan.DISETUJUI, nomenklatur='ATK', total=200000.0)

    kas = keuangan.record_realisasi(item, 180000.0)
    db.session.commit()
    assert item.realisasi == 180000.0
    assert item.selisih == 20000.0
    assert item.arus_kas_id == kas.id
    assert kas.jenis == 'Keluar'
    assert kas.nominal == 180000.0
    assert kas.nomenklatur == 'ATK'

    # A second realisasi updates the same cash row
    keuangan.record_realisasi(item, 210000.0)
    db.session.commit()
    assert ArusKas.query.count() == 1
    assert item.selisih == -10000.0


def test_realisasi_requires_approval(school):
    item = add_pengajuan()
    with pytest.raises(WorkflowError):
        keuangan.record_realisasi(item, 1000.0)


def test_realisasi_route_stores_bukti(client, app, school, admin):
    item = add_pengajuan(status=keuangan.DISETUJUI)
    response = client.post(f'/keuangan/realisasi/{item.id}', data={
        'realisasi': '140000', 'bukti': (BytesIO(b'\x89PNG fake image'), 'nota.png')},
        content_type='multipart/form-data')
    assert response.status_code == 302
    assert item.realisasi == 140000.0
    assert item.bukti_path.startswith('realisasi/')
    assert item.bukti_path.endswith('_nota.png')


def test_cash_totals():
    rows = [ArusKas(jenis='Masuk', nominal=500000.0), ArusKas(jenis='Keluar', nominal=125000.0),
            ArusKas(jenis='Keluar', nominal=75000.0)]
    assert keuangan.cash_totals(rows) == {'masuk': 500000.0, 'keluar': 200000.0, 'saldo': 300000.0}


def test_month_range_wraps_december():
    assert keuangan.month_range(2024, 12) == (date(2024, 12, 1), date(2025, 1, 1))
    assert keuangan.month_range(2024) == (date(2024, 1, 1), date(2025, 1, 1))


def test_arus_kas_entry_and_pdf(client, school, admin):
    response = client.post('/keuangan/arus-kas/add', data={
        'tanggal': date.today().isoformat(), 'jenis': 'Masuk', 'cabang': 'Cabang A', 'nomenklatur': '',
        'keterangan': 'SPP Januari', 'nominal': '750000'})
    assert response.status_code == 302
    assert ArusKas.query.one().nominal == 750000.0

    listing = client.get('/keuangan/arus-kas')
    assert listing.status_code == 200
    assert b'SPP Januari' in listing.data

    response = client.get('/keuangan/arus-kas/pdf?cabang=Cabang+A')
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')


def test_arus_kas_pdf_without_rows(app):
    content = arus_kas_pdf([], keuangan.cash_totals([]), 'Semua periode', 'Semua Cabang', 'Main Riang')
    assert content.startswith(b'%PDF')


def test_pengajuan_list_filters(app, school, make_guru):
    direktur = make_guru('Pak Budi', 'budi@mainriang.sch.id', role=DIREKTUR, cabang=None)
    today = date.today()
    last_year = date(today.year - 1, 6, 10)
    add_pengajuan(pengaju='Bu Ani')
    add_pengajuan(pengaju='Pak Dodi', status=keuangan.DISETUJUI, cabang='Main Riang Pusat')
    add_pengajuan(pengaju='Bu Ani', tanggal=last_year)
    user = user_for(direktur)

    def listed(query_string=''):
        with app.test_request_context(f'/keuangan/pengajuan{query_string}'):
            return keuangan.filtered_pengajuan(user, request.args)

    rows, year, month = listed()
    assert (year, month) == (today.year, today.month)
    assert sorted(row.pengaju for row in rows) == ['Bu Ani', 'Pak Dodi']

    rows, _, _ = listed('?nama=ANI')
    assert [row.pengaju for row in rows] == ['Bu Ani']

    rows, _, _ = listed(f'?status={keuangan.DISETUJUI}')
    assert [row.pengaju for row in rows] == ['Pak Dodi']

    rows, _, _ = listed('?cabang=Main+Riang+Pusat')
    assert [row.pengaju for row in rows] == ['Pak Dodi']

    rows, year, month = listed(f'?tahun={last_year.year}&bulan=')
    assert (year, month) == (last_year.year, None)
    assert [row.tanggal for row in rows] == [last_year]


def test_kepala_sekolah_cannot_touch_other_branch_finance(client, school, make_guru, login):
    ks = make_guru('Bu Rina', 'rina@mainriang.sch.id', role=KEPALA_SEKOLAH)
    item = add_pengajuan(cabang='Main Riang Pusat', status=keuangan.DISETUJUI)
    kas = ArusKas(tanggal=date.today(), cabang='Main Riang Pusat', jenis='Masuk', nominal=500000)
    db.session.add(kas)
    db.session.commit()
    login(ks.email)

    assert client.post(f'/keuangan/pengajuan/{item.id}/delete').status_code == 403
    assert client.post(f'/keuangan/realisasi/{item.id}', data={'realisasi': '1'}).status_code == 404
    assert client.post(f'/keuangan/arus-kas/{kas.id}/delete').status_code == 404
    assert Pengajuan.query.count() == 1
    assert item.realisasi is None
    assert ArusKas.query.count() == 1


def test_realisasi_keeps_new_bukti_when_old_one_cannot_be_deleted(client, school, admin):
    item = add_pengajuan(status=keuangan.DISETUJUI, bukti_path='../di-luar-folder.png')
    response = client.post(f'/keuangan/realisasi/{item.id}', data={
        'realisasi': '140000', 'bukti': (BytesIO(b'\x89PNG fake image'), 'nota.png')},
        content_type='multipart/form-data')
    assert response.status_code == 302
    assert item.bukti_path.startswith('realisasi/')
    assert storage.exists(item.bukti_path)
