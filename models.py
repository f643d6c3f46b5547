import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def new_uid():
    return uuid.uuid4().hex


# Database Models

# --- Identity ---

class Account(db.Model):
    """Login identity. Profiles (Guru/Siswa) point at it through ``uid``."""
    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(64), unique=True, nullable=False, default=new_uid)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    display_name = db.Column(db.String(200))
    disabled = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# --- Settings ---

class Cabang(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    kepala_sekolah = db.Column(db.String(200))
    alamat = db.Column(db.String(500))
    status = db.Column(db.String(20), default='Aktif')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Kelas(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    nama_kelas = db.Column(db.String(100), nullable=False)
    cabang = db.Column(db.String(200), nullable=False)  # Branch name, not a foreign key
    jenjang_kelas = db.Column(db.String(100))
    guru_kelas = db.Column(db.JSON, default=list)  # Teacher names
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def has_teacher(self, nama):
        return nama in (self.guru_kelas or [])


class Periode(db.Model):
    """Semester / KPI period."""
    __tablename__ = 'kpi_periode'
    id = db.Column(db.Integer, primary_key=True)
    nama_periode = db.Column(db.String(100), nullable=False)
    is_default = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def default(cls):
        return cls.query.filter_by(is_default=True).first()


class Nomenklatur(db.Model):
    __tablename__ = 'nomenklatur_keuangan'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    kategori = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- People ---

class Guru(db.Model):
    """Staff profile: teachers, principals, directors, foundation and admins."""
    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(64), index=True)
    nama = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), index=True)
    role = db.Column(db.String(50), default='Guru')
    status = db.Column(db.String(20), default='Aktif')
    cabang = db.Column(db.String(200))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Siswa(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(64), index=True)
    nama = db.Column(db.String(200), nullable=False)
    nama_orang_tua = db.Column(db.String(200))
    kelas = db.Column(db.String(100))
    cabang = db.Column(db.String(200))
    email = db.Column(db.String(200), index=True)
    status = db.Column(db.String(20), default='Aktif')
    nis = db.Column(db.String(50))
    nisn = db.Column(db.String(50))
    jenjang_usia = db.Column(db.String(50))
    foto_path = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- Academic master data ---

class Habit(db.Model):
    __tablename__ = 'seven_habits'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    deskripsi = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class IndikatorGroup(db.Model):
    __tablename__ = 'indikator_groups'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class SubIndikator(db.Model):
    __tablename__ = 'sub_indikators'
    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, index=True, nullable=False)
    kode = db.Column(db.String(50))
    deskripsi = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class TrilogiGroup(db.Model):
    __tablename__ = 'trilogi_groups'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class SubTrilogi(db.Model):
    __tablename__ = 'sub_trilogi'
    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, index=True, nullable=False)
    kode = db.Column(db.String(50))
    deskripsi = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class KelompokUsia(db.Model):
    __tablename__ = 'kelompok_usia'
    id = db.Column(db.Integer, primary_key=True)
    usia = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class TahapPerkembangan(db.Model):
    __tablename__ = 'tahap_perkembangan'
    id = db.Column(db.Integer, primary_key=True)
    kelompok_usia_id = db.Column(db.Integer, index=True, nullable=False)
    lingkup = db.Column(db.String(200))
    deskripsi = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Rpph(db.Model):
    """Daily lesson plan."""
    id = db.Column(db.Integer, primary_key=True)
    tanggal = db.Column(db.Date, nullable=False)
    tema = db.Column(db.String(200), nullable=False)
    sub_tema = db.Column(db.String(200))
    materi = db.Column(db.String(500))
    deskripsi = db.Column(db.Text)
    kelas = db.Column(db.String(100))
    kelompok_usia = db.Column(db.String(100))
    tahap_perkembangan = db.Column(db.JSON, default=list)
    indikator = db.Column(db.JSON, default=list)
    trilogi = db.Column(db.JSON, default=list)
    content = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- Finance ---

class Pengajuan(db.Model):
    """Budget submission moving through the approval workflow."""
    id = db.Column(db.Integer, primary_key=True)
    tanggal = db.Column(db.Date, nullable=False)
    pengaju = db.Column(db.String(200), nullable=False)
    cabang = db.Column(db.String(200))
    nomenklatur = db.Column(db.String(200))
    barang = db.Column(db.String(500), nullable=False)
    harga_satuan = db.Column(db.Float, default=0.0)
    qty = db.Column(db.Integer, default=1)
    total = db.Column(db.Float, default=0.0)
    status = db.Column(db.String(50), nullable=False)
    user_uid = db.Column(db.String(64), index=True)
    realisasi = db.Column(db.Float)
    selisih = db.Column(db.Float)
    bukti_path = db.Column(db.String(500))
    arus_kas_id = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ArusKas(db.Model):
    __tablename__ = 'arus_kas'
    id = db.Column(db.Integer, primary_key=True)
    tanggal = db.Column(db.Date, nullable=False)
    cabang = db.Column(db.String(200))
    nomenklatur = db.Column(db.String(200))
    keterangan = db.Column(db.String(500))
    jenis = db.Column(db.String(10), nullable=False)  # Masuk / Keluar
    nominal = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- Information ---

class Pengumuman(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    cabang = db.Column(db.String(200))
    judul = db.Column(db.String(300), nullable=False)
    deskripsi = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Kegiatan(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    cabang = db.Column(db.String(200))
    nama = db.Column(db.String(300), nullable=False)
    tanggal = db.Column(db.Date)
    lokasi = db.Column(db.String(300))
    keterangan = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Jadwal(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    cabang = db.Column(db.String(200), nullable=False)
    kelas = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class JadwalDetil(db.Model):
    __tablename__ = 'jadwal_detil'
    id = db.Column(db.Integer, primary_key=True)
    jadwal_id = db.Column(db.Integer, index=True, nullable=False)
    hari = db.Column(db.String(20), nullable=False)
    waktu = db.Column(db.String(50), nullable=False)
    aktivitas = db.Column(db.String(300), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Dokumen(db.Model):
    __tablename__ = 'dokumen_sekolah'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(300), nullable=False)
    storage_path = db.Column(db.String(500))
    filename = db.Column(db.String(300))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime)


# --- Assessment ---

class KategoriPenilaian(db.Model):
    __tablename__ = 'kategori_penilaian'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class KriteriaNilai(db.Model):
    __tablename__ = 'kriteria_nilai'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)  # e.g. Berkembang Sangat Baik (BSB)
    keterangan = db.Column(db.Text)
    nilai = db.Column(db.Integer, nullable=False)
    kategori_id = db.Column(db.Integer, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class NilaiMixin:
    """Columns shared by every score record. Names are copied next to ids."""
    id = db.Column(db.Integer, primary_key=True)
    tanggal = db.Column(db.Date, nullable=False)
    cabang_id = db.Column(db.Integer, index=True)
    nama_cabang = db.Column(db.String(200))
    kelas_id = db.Column(db.Integer, index=True)
    nama_kelas = db.Column(db.String(100))
    siswa_id = db.Column(db.Integer, index=True)
    nama_siswa = db.Column(db.String(200))
    semester_id = db.Column(db.Integer, index=True)
    nama_semester = db.Column(db.String(100))
    nilai = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime)


class NilaiIndikator(NilaiMixin, db.Model):
    __tablename__ = 'nilai_indikator'
    indikator_id = db.Column(db.Integer)
    nama_indikator = db.Column(db.String(200))
    sub_indikator_id = db.Column(db.Integer)
    nama_sub_indikator = db.Column(db.Text)


class NilaiPerkembangan(NilaiMixin, db.Model):
    __tablename__ = 'nilai_perkembangan'
    tahap_id = db.Column(db.Integer)
    nama_tahap = db.Column(db.Text)


class NilaiTrilogi(NilaiMixin, db.Model):
    __tablename__ = 'nilai_trilogi'
    trilogi_id = db.Column(db.Integer)
    nama_trilogi = db.Column(db.String(200))
    sub_trilogi_id = db.Column(db.Integer)
    nama_sub_trilogi = db.Column(db.Text)


class InfoTambahanRapor(db.Model):
    __tablename__ = 'info_tambahan_rapor'
    id = db.Column(db.Integer, primary_key=True)
    cabang = db.Column(db.String(200), nullable=False)
    kelas = db.Column(db.String(100), nullable=False)
    semester = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class InfoTambahanSiswa(db.Model):
    __tablename__ = 'info_tambahan_siswa'
    id = db.Column(db.Integer, primary_key=True)
    info_tambahan_id = db.Column(db.Integer, index=True, nullable=False)
    siswa_id = db.Column(db.Integer, index=True, nullable=False)
    berat_badan = db.Column(db.Float)
    tinggi_badan = db.Column(db.Float)
    lingkar_kepala = db.Column(db.Float)
    sakit = db.Column(db.Integer, default=0)
    ijin = db.Column(db.Integer, default=0)
    alpa = db.Column(db.Integer, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CatatanGuru(db.Model):
    __tablename__ = 'catatan_guru'
    id = db.Column(db.Integer, primary_key=True)
    guru_id = db.Column(db.Integer, index=True)
    guru_nama = db.Column(db.String(200))
    siswa_id = db.Column(db.Integer, index=True, nullable=False)
    siswa_nama = db.Column(db.String(200))
    catatan = db.Column(db.Text, nullable=False)
    cabang = db.Column(db.String(200))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- Performance ---

class KpiGuru(db.Model):
    __tablename__ = 'kpi_guru'
    id = db.Column(db.Integer, primary_key=True)
    guru_id = db.Column(db.Integer, index=True, nullable=False)
    nama_guru = db.Column(db.String(200))
    cabang = db.Column(db.String(200))
    indikator = db.Column(db.String(300), nullable=False)
    target = db.Column(db.Float, default=0.0)
    tercapai = db.Column(db.Float, default=0.0)
    periode_id = db.Column(db.Integer)
    nama_periode = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def persentase(self):
        if not self.target:
            return 0.0
        return (self.tercapai or 0) / self.target * 100


# --- Reports ---

class LaporanBulanan(db.Model):
    __tablename__ = 'laporan_bulanan'
    id = db.Column(db.Integer, primary_key=True)
    semester_id = db.Column(db.Integer)
    semester = db.Column(db.String(100))
    bulan = db.Column(db.String(20), nullable=False)
    cabang_id = db.Column(db.Integer)
    cabang = db.Column(db.String(200), index=True)
    disusun_oleh = db.Column(db.String(200))
    ringkasan_eksekutif = db.Column(db.JSON, default=dict)
    capaian_okr = db.Column(db.JSON, default=dict)
    capaian_ppdb = db.Column(db.JSON, default=dict)
    keuangan_singkat = db.Column(db.JSON, default=list)
    jumlah_siswa = db.Column(db.JSON, default=dict)
    isu_strategis = db.Column(db.Text)
    rekomendasi_kegiatan = db.Column(db.Text)
    rencana_agenda = db.Column(db.JSON, default=dict)
    dokumentasi = db.Column(db.JSON, default=list)  # Storage paths
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- Daycare ---

class DaycareAktivitas(db.Model):
    __tablename__ = 'daycare_aktivitas'
    id = db.Column(db.Integer, primary_key=True)
    nama = db.Column(db.String(200), nullable=False)
    urutan = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class DaycareSubAktivitas(db.Model):
    __tablename__ = 'daycare_sub_aktivitas'
    id = db.Column(db.Integer, primary_key=True)
    aktivitas_id = db.Column(db.Integer, index=True, nullable=False)
    deskripsi = db.Column(db.String(300), nullable=False)
    opsi_jawaban = db.Column(db.JSON, default=list)
    urutan = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class DaycareLaporanHarian(db.Model):
    __tablename__ = 'daycare_laporan_harian'
    id = db.Column(db.Integer, primary_key=True)
    tanggal = db.Column(db.Date, nullable=False)
    cabang_id = db.Column(db.Integer)
    kelas_id = db.Column(db.Integer)
    siswa_id = db.Column(db.Integer, index=True, nullable=False)
    hasil = db.Column(db.JSON, default=dict)  # {sub_aktivitas_id: [options]}
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class PertumbuhanAnak(db.Model):
    __tablename__ = 'pertumbuhan_anak'
    id = db.Column(db.Integer, primary_key=True)
    tanggal = db.Column(db.Date, nullable=False)
    cabang = db.Column(db.String(200))
    kelas = db.Column(db.String(100))
    siswa_id = db.Column(db.Integer, index=True, nullable=False)
    lingkar_kepala = db.Column(db.Float)
    tinggi_badan = db.Column(db.Float)
    berat_badan = db.Column(db.Float)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


# --- Activity log ---

class LogAktivitas(db.Model):
    __tablename__ = 'aktivitas'
    id = db.Column(db.Integer, primary_key=True)
    user = db.Column(db.String(200))
    aktivitas = db.Column(db.String(500))
    waktu = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    status = db.Column(db.String(20), default='Sukses')
