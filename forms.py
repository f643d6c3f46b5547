"""
WTForms definitions and the choice lists that feed their select fields.
"""
from datetime import date

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import (BooleanField, DateField, FloatField, IntegerField, PasswordField,
                     SelectField, SelectMultipleField, StringField, TextAreaField)
from wtforms.validators import DataRequired, EqualTo, InputRequired, Length, NumberRange, Optional, Regexp

from models import (Cabang, DaycareAktivitas, Guru, KategoriPenilaian, Kelas,
                    KelompokUsia, KriteriaNilai, Nomenklatur, Periode, Siswa, SubIndikator,
                    SubTrilogi, TahapPerkembangan, db)

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
STATUS_CHOICES = [('Aktif', 'Aktif'), ('Nonaktif', 'Nonaktif')]
HARI = ['Senin', 'Selasa', 'Rabu', 'Kamis', 'Jumat', 'Sabtu', 'Minggu']
DEFAULT_NILAI_CHOICES = [(1, '1'), (2, '2'), (3, '3')]


def cascade(url, target, param, empty='0', value_key='id'):
    """render_kw that makes a select repopulate another select through a JSON API."""
    return {
        'data-cascade-url': url,
        'data-cascade-target': target,
        'data-cascade-param': param,
        'data-cascade-empty': empty,
        'data-cascade-value': value_key,
    }


# Choice lists

def cabang_name_choices(blank='-- Pilih Cabang --'):
    rows = Cabang.query.order_by(Cabang.nama).all()
    return [('', blank)] + [(c.nama, c.nama) for c in rows]


def cabang_id_choices():
    rows = Cabang.query.order_by(Cabang.nama).all()
    return [(0, '-- Pilih Cabang --')] + [(c.id, c.nama) for c in rows]


def kelas_names(cabang=None):
    query = Kelas.query
    if cabang:
        query = query.filter_by(cabang=cabang)
    return sorted({k.nama_kelas for k in query.all()})


def kelas_name_choices(cabang=None, blank='-- Pilih Kelas --'):
    return [('', blank)] + [(n, n) for n in kelas_names(cabang)]


def kelas_id_choices(cabang_id=None):
    query = Kelas.query
    if cabang_id:
        cabang = db.session.get(Cabang, cabang_id)
        query = query.filter_by(cabang=cabang.nama if cabang else None)
    else:
        return [(0, '-- Pilih Kelas --')]
    return [(0, '-- Pilih Kelas --')] + [(k.id, k.nama_kelas) for k in query.order_by(Kelas.nama_kelas)]


def siswa_id_choices(kelas=None, cabang=None):
    """Students of a class (by name) in a branch (by name)."""
    if not kelas:
        return [(0, '-- Pilih Siswa --')]
    query = Siswa.query.filter_by(kelas=kelas)
    if cabang:
        query = query.filter_by(cabang=cabang)
    return [(0, '-- Pilih Siswa --')] + [(s.id, s.nama) for s in query.order_by(Siswa.nama)]


def periode_choices(blank='-- Pilih Semester --'):
    rows = Periode.query.order_by(Periode.id.desc()).all()
    return [(0, blank)] + [(p.id, p.nama_periode) for p in rows]


def guru_id_choices(cabang=None):
    query = Guru.query
    if cabang:
        query = query.filter_by(cabang=cabang)
    return [(0, '-- Pilih Guru --')] + [(g.id, g.nama) for g in query.order_by(Guru.nama)]


def nomenklatur_choices(kategori=None):
    query = Nomenklatur.query
    if kategori:
        query = query.filter_by(kategori=kategori)
    return [('', '-- Pilih Nomenklatur --')] + [(n.nama, n.nama) for n in query.order_by(Nomenklatur.nama)]


def group_choices(model, blank):
    return [(0, blank)] + [(g.id, g.nama) for g in model.query.order_by(model.nama)]


def sub_item_label(item):
    return f'{item.kode} - {item.deskripsi}' if item.kode else item.deskripsi


def sub_indikator_choices(group_id):
    if not group_id:
        return [(0, '-- Pilih Sub Indikator --')]
    rows = SubIndikator.query.filter_by(group_id=group_id).order_by(SubIndikator.kode).all()
    return [(0, '-- Pilih Sub Indikator --')] + [(s.id, sub_item_label(s)) for s in rows]


def sub_trilogi_choices(group_id):
    if not group_id:
        return [(0, '-- Pilih Sub Trilogi --')]
    rows = SubTrilogi.query.filter_by(group_id=group_id).order_by(SubTrilogi.kode).all()
    return [(0, '-- Pilih Sub Trilogi --')] + [(s.id, sub_item_label(s)) for s in rows]


def kelompok_usia_choices():
    return [(0, '-- Pilih Kelompok Usia --')] + [(k.id, k.usia) for k in KelompokUsia.query.order_by(KelompokUsia.usia)]


def tahap_choices(kelompok_usia_id=None):
    query = TahapPerkembangan.query
    if kelompok_usia_id:
        query = query.filter_by(kelompok_usia_id=kelompok_usia_id)
    return [(t.id, t.deskripsi) for t in query.order_by(TahapPerkembangan.id)]


def kriteria_for(kategori_nama):
    """Criteria of the named assessment category, lowest value first."""
    kategori = KategoriPenilaian.query.filter_by(nama=kategori_nama).first()
    if not kategori:
        return []
    return KriteriaNilai.query.filter_by(kategori_id=kategori.id).order_by(KriteriaNilai.nilai).all()


def nilai_choices(kategori_nama):
    kriteria = kriteria_for(kategori_nama)
    if not kriteria:
        return list(DEFAULT_NILAI_CHOICES)
    return [(k.nilai, f'{k.nilai} - {k.nama}') for k in kriteria]


def nilai_labels(kategori_nama):
    """Map a score value to its criteria name."""
    return {k.nilai: k.nama for k in kriteria_for(kategori_nama)}


# Authentication

class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Regexp(EMAIL_PATTERN, message='Email tidak valid')])
    password = PasswordField('Password', validators=[DataRequired()])


class ForgotPasswordForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Regexp(EMAIL_PATTERN, message='Email tidak valid')])


class ResetPasswordForm(FlaskForm):
    password = PasswordField('Password Baru', validators=[DataRequired(), Length(min=6)])
    confirm = PasswordField('Konfirmasi Password',
                            validators=[DataRequired(), EqualTo('password', message='Konfirmasi password tidak cocok')])


class ChangePasswordForm(FlaskForm):
    old_password = PasswordField('Password Lama', validators=[DataRequired()])
    new_password = PasswordField('Password Baru', validators=[DataRequired(), Length(min=6)])
    confirm = PasswordField('Konfirmasi Password Baru',
                            validators=[DataRequired(), EqualTo('new_password', message='Konfirmasi password tidak cocok')])


# Settings

class CabangForm(FlaskForm):
    nama = StringField('Nama Cabang', validators=[DataRequired()])
    kepala_sekolah = StringField('Kepala Sekolah')
    alamat = TextAreaField('Alamat')
    status = SelectField('Status', choices=STATUS_CHOICES, default='Aktif')


class KelasForm(FlaskForm):
    nama_kelas = StringField('Nama Kelas', validators=[DataRequired()])
    cabang = SelectField('Cabang', validators=[DataRequired()])
    jenjang_kelas = StringField('Jenjang Kelas')
    guru_kelas = SelectMultipleField('Guru Kelas')


class NomenklaturForm(FlaskForm):
    nama = StringField('Nama', validators=[DataRequired()])
    kategori = SelectField('Kategori', choices=[('Pemasukan', 'Pemasukan'), ('Pengeluaran', 'Pengeluaran')],
                           default='Pemasukan')


class PeriodeForm(FlaskForm):
    nama_periode = StringField('Nama Periode', validators=[DataRequired()])
    is_default = BooleanField('Jadikan default')


# People

class GuruForm(FlaskForm):
    nama = StringField('Nama', validators=[DataRequired()])
    email = StringField('Email', validators=[DataRequired(), Regexp(EMAIL_PATTERN, message='Email tidak valid')])
    password = PasswordField('Password', validators=[Optional(), Length(min=6)],
                             description='Kosongkan jika tidak ingin mengubah password')
    role = SelectField('Role', default='Guru')
    status = SelectField('Status', choices=STATUS_CHOICES, default='Aktif')
    cabang = SelectField('Cabang')


class SiswaForm(FlaskForm):
    nama = StringField('Nama Siswa', validators=[DataRequired()])
    nama_orang_tua = StringField('Nama Orang Tua')
    cabang = SelectField('Cabang', validators=[DataRequired()],
                         render_kw=cascade('/api/kelas', 'kelas', 'cabang', empty='', value_key='nama'))
    kelas = SelectField('Kelas', validators=[DataRequired()])
    email = StringField('Email', validators=[DataRequired(), Regexp(EMAIL_PATTERN, message='Email tidak valid')])
    password = PasswordField('Password', validators=[Optional(), Length(min=6)],
                             description='Kosongkan jika tidak ingin mengubah password')
    status = SelectField('Status', choices=STATUS_CHOICES, default='Aktif')
    nis = StringField('NIS')
    nisn = StringField('NISN')
    jenjang_usia = StringField('Jenjang Usia')
    foto = FileField('Foto', validators=[FileAllowed(['png', 'jpg', 'jpeg', 'gif', 'webp'], 'Hanya file gambar')])


# Academic

class HabitForm(FlaskForm):
    nama = StringField('Nama Habit', validators=[DataRequired()])
    deskripsi = TextAreaField('Deskripsi')


class GroupForm(FlaskForm):
    nama = StringField('Nama', validators=[DataRequired()])


class SubItemForm(FlaskForm):
    group_id = SelectField('Kelompok', coerce=int, validators=[DataRequired()])
    kode = StringField('Kode')
    deskripsi = TextAreaField('Deskripsi', validators=[DataRequired()])


class KelompokUsiaForm(FlaskForm):
    usia = StringField('Kelompok Usia', validators=[DataRequired()])


class TahapForm(FlaskForm):
    kelompok_usia_id = SelectField('Kelompok Usia', coerce=int, validators=[DataRequired()])
    lingkup = StringField('Lingkup Perkembangan')
    deskripsi = TextAreaField('Tahap Perkembangan', validators=[DataRequired()])


class RpphForm(FlaskForm):
    tanggal = DateField('Tanggal', validators=[DataRequired()], default=date.today)
    tema = StringField('Tema', validators=[DataRequired()])
    sub_tema = StringField('Sub Tema')
    materi = StringField('Materi')
    deskripsi = TextAreaField('Deskripsi Kegiatan')
    kelas = SelectField('Kelas')
    kelompok_usia = SelectField('Kelompok Usia')
    tahap_perkembangan = SelectMultipleField('Tahap Perkembangan')
    indikator = SelectMultipleField('Indikator')
    trilogi = SelectMultipleField('Trilogi')
    content = TextAreaField('Isi RPPH', render_kw={'rows': 12},
                            description='Kosongkan untuk membuat draf otomatis dari isian di atas')


# Finance

class PengajuanForm(FlaskForm):
    tanggal = DateField('Tanggal', validators=[DataRequired()], default=date.today)
    cabang = SelectField('Cabang', validators=[DataRequired()])
    nomenklatur = SelectField('Nomenklatur')
    barang = StringField('Barang / Keperluan', validators=[DataRequired()])
    harga_satuan = FloatField('Harga Satuan', validators=[InputRequired(), NumberRange(min=0)])
    qty = IntegerField('Qty', validators=[DataRequired(), NumberRange(min=1)], default=1)


class RealisasiForm(FlaskForm):
    realisasi = FloatField('Jumlah Realisasi', validators=[InputRequired(), NumberRange(min=0)])
    bukti = FileField('Bukti (gambar)', validators=[FileAllowed(['png', 'jpg', 'jpeg', 'gif', 'webp'], 'Hanya file gambar')])


class ArusKasForm(FlaskForm):
    tanggal = DateField('Tanggal', validators=[DataRequired()], default=date.today)
    jenis = SelectField('Jenis', choices=[('Masuk', 'Pemasukan'), ('Keluar', 'Pengeluaran')], default='Masuk')
    cabang = SelectField('Cabang')
    nomenklatur = SelectField('Nomenklatur')
    keterangan = StringField('Keterangan')
    nominal = FloatField('Nominal', validators=[InputRequired(), NumberRange(min=0)])


# Information

class PengumumanForm(FlaskForm):
    cabang = SelectField('Cabang')
    judul = StringField('Judul', validators=[DataRequired()])
    deskripsi = TextAreaField('Deskripsi')


class KegiatanForm(FlaskForm):
    cabang = SelectField('Cabang')
    nama = StringField('Nama Kegiatan', validators=[DataRequired()])
    tanggal = DateField('Tanggal', validators=[Optional()])
    lokasi = StringField('Lokasi')
    keterangan = TextAreaField('Keterangan')


class JadwalForm(FlaskForm):
    cabang = SelectField('Cabang', validators=[DataRequired()],
                         render_kw=cascade('/api/kelas', 'kelas', 'cabang', empty='', value_key='nama'))
    kelas = SelectField('Kelas', validators=[DataRequired()])


class JadwalDetilForm(FlaskForm):
    hari = SelectField('Hari', choices=[(h, h) for h in HARI])
    waktu = StringField('Waktu', validators=[DataRequired()], description='Contoh: 07:30 - 08:00')
    aktivitas = StringField('Aktivitas', validators=[DataRequired()])


class DokumenForm(FlaskForm):
    nama = StringField('Nama Dokumen', validators=[DataRequired()])
    file = FileField('File PDF', validators=[FileAllowed(['pdf'], 'Hanya file PDF')])


# Assessment

class KategoriPenilaianForm(FlaskForm):
    nama = StringField('Nama Kategori', validators=[DataRequired()])


class KriteriaNilaiForm(FlaskForm):
    nama = StringField('Nama Kriteria', validators=[DataRequired()])
    keterangan = TextAreaField('Keterangan')
    nilai = IntegerField('Nilai', validators=[InputRequired()])
    kategori_id = SelectField('Kategori', coerce=int, validators=[DataRequired()])


class NilaiForm(FlaskForm):
    tanggal = DateField('Tanggal', validators=[DataRequired()], default=date.today)
    cabang_id = SelectField('Cabang', coerce=int, validators=[DataRequired()],
                            render_kw=cascade('/api/kelas', 'kelas_id', 'cabang_id'))
    kelas_id = SelectField('Kelas', coerce=int, validators=[DataRequired()],
                           render_kw=cascade('/api/siswa', 'siswa_id', 'kelas_id'))
    siswa_id = SelectField('Siswa', coerce=int, validators=[DataRequired()])
    semester_id = SelectField('Semester', coerce=int, validators=[DataRequired()])
    nilai = SelectField('Nilai', coerce=int, validators=[DataRequired()])


class NilaiIndikatorForm(NilaiForm):
    indikator_id = SelectField('Indikator', coerce=int, validators=[DataRequired()],
                               render_kw=cascade('/api/sub-indikator', 'sub_indikator_id', 'group_id'))
    sub_indikator_id = SelectField('Sub Indikator', coerce=int, validators=[DataRequired()])


class NilaiPerkembanganForm(NilaiForm):
    tahap_id = SelectField('Tahap Perkembangan', coerce=int, validators=[DataRequired()])


class NilaiTrilogiForm(NilaiForm):
    trilogi_id = SelectField('Trilogi', coerce=int, validators=[DataRequired()],
                             render_kw=cascade('/api/sub-trilogi', 'sub_trilogi_id', 'group_id'))
    sub_trilogi_id = SelectField('Sub Trilogi', coerce=int, validators=[DataRequired()])


class InfoTambahanForm(FlaskForm):
    cabang = SelectField('Cabang', validators=[DataRequired()],
                         render_kw=cascade('/api/kelas', 'kelas', 'cabang', empty='', value_key='nama'))
    kelas = SelectField('Kelas', validators=[DataRequired()])
    semester = SelectField('Semester', validators=[DataRequired()])


class CatatanForm(FlaskForm):
    siswa_id = SelectField('Siswa', coerce=int, validators=[DataRequired()])
    catatan = TextAreaField('Catatan', validators=[DataRequired()])


# Performance

class KpiForm(FlaskForm):
    guru_id = SelectField('Guru', coerce=int, validators=[DataRequired()])
    indikator = StringField('Indikator Kinerja', validators=[DataRequired()])
    target = FloatField('Target', validators=[Optional(), NumberRange(min=0)], default=0)
    tercapai = FloatField('Tercapai', validators=[Optional(), NumberRange(min=0)], default=0)
    periode_id = SelectField('Periode', coerce=int, validators=[DataRequired()])


# Daycare

class DaycareAktivitasForm(FlaskForm):
    nama = StringField('Nama Aktivitas', validators=[DataRequired()])
    urutan = IntegerField('Urutan', validators=[Optional()])


class DaycareSubAktivitasForm(FlaskForm):
    aktivitas_id = SelectField('Aktivitas', coerce=int, validators=[DataRequired()])
    deskripsi = StringField('Deskripsi', validators=[DataRequired()])
    opsi_jawaban = StringField('Opsi Jawaban', description='Pisahkan dengan koma, contoh: Habis, Setengah, Tidak mau')
    urutan = IntegerField('Urutan', validators=[Optional()])


class PertumbuhanForm(FlaskForm):
    tanggal = DateField('Tanggal', validators=[DataRequired()], default=date.today)
    cabang = SelectField('Cabang', validators=[DataRequired()],
                         render_kw=cascade('/api/kelas', 'kelas', 'cabang', empty='', value_key='nama'))
    kelas = SelectField('Kelas', validators=[DataRequired()],
                        render_kw=cascade('/api/siswa', 'siswa_id', 'kelas'))
    siswa_id = SelectField('Siswa', coerce=int, validators=[DataRequired()])
    lingkar_kepala = FloatField('Lingkar Kepala (cm)', validators=[Optional()])
    tinggi_badan = FloatField('Tinggi Badan (cm)', validators=[Optional()])
    berat_badan = FloatField('Berat Badan (kg)', validators=[Optional()])


def aktivitas_choices():
    rows = DaycareAktivitas.query.order_by(DaycareAktivitas.urutan).all()
    return [(0, '-- Pilih Aktivitas --')] + [(a.id, a.nama) for a in rows]


class DaycareLaporanForm(FlaskForm):
    tanggal = DateField('Tanggal', validators=[DataRequired()], default=date.today)
    cabang_id = SelectField('Cabang', coerce=int, validators=[DataRequired()],
                            render_kw=cascade('/api/kelas', 'kelas_id', 'cabang_id'))
    kelas_id = SelectField('Kelas', coerce=int, validators=[DataRequired()],
                           render_kw=cascade('/api/siswa', 'siswa_id', 'kelas_id'))
    siswa_id = SelectField('Siswa', coerce=int, validators=[DataRequired()])
