"""
Roles, the signed-in user's profile and the role-filtered navigation menu.
"""
import logging
from functools import wraps

from flask import abort, g, has_request_context, session

from models import Account, Guru, Kelas, Siswa

logger = logging.getLogger(__name__)

ADMIN = 'Admin'
KEPALA_SEKOLAH = 'Kepala Sekolah'
DIREKTUR = 'Direktur'
YAYASAN = 'Yayasan'
GURU = 'Guru'
CAREGIVER = 'Caregiver'
SISWA = 'Siswa'
USER = 'User'

STAFF_ROLES = (ADMIN, KEPALA_SEKOLAH, DIREKTUR, YAYASAN, GURU, CAREGIVER)
ADMIN_PANEL_ROLES = (ADMIN, KEPALA_SEKOLAH, DIREKTUR, YAYASAN)
TEACHER_ROLES = (GURU, CAREGIVER)
SUBMISSION_ROLES = TEACHER_ROLES + ADMIN_PANEL_ROLES
# Roles that are never narrowed to a single branch
ALL_BRANCH_ROLES = (ADMIN, DIREKTUR, YAYASAN)


class CurrentUser:
    """The account in the session together with its Guru or Siswa profile."""

    def __init__(self, account, guru=None, siswa=None):
        self.account = account
        self.guru = guru
        self.siswa = siswa
        self.uid = account.uid
        self.email = account.email
        if guru is not None:
            self.nama = guru.nama
            self.role = guru.role or GURU
            self.cabang = guru.cabang
            self.kelas = None
        elif siswa is not None:
            self.nama = siswa.nama
            self.role = SISWA
            self.cabang = siswa.cabang
            self.kelas = siswa.kelas
        else:
            self.nama = account.display_name or account.email
            self.role = USER
            self.cabang = None
            self.kelas = None

    @property
    def is_admin_panel(self):
        return self.role in ADMIN_PANEL_ROLES

    @property
    def is_teacher(self):
        return self.role in TEACHER_ROLES

    @property
    def sees_all_branches(self):
        return self.role in ALL_BRANCH_ROLES

    def branch_scope(self):
        """Branch a list should be narrowed to, or None for every branch."""
        if self.sees_all_branches:
            return None
        return self.cabang

    def can_access_branch(self, cabang):
        scope = self.branch_scope()
        return scope is None or cabang == scope

    def __repr__(self):
        return f'<CurrentUser {self.email} {self.role}>'


def resolve_user(account):
    guru = Guru.query.filter_by(email=account.email).first()
    if guru:
        return CurrentUser(account, guru=guru)
    siswa = Siswa.query.filter_by(email=account.email).first()
    if siswa:
        return CurrentUser(account, siswa=siswa)
    return CurrentUser(account)


def current_user():
    """Profile of the logged-in account, cached on ``g`` for the session's uid."""
    if not has_request_context():
        return None
    uid = session.get('uid')
    cached = g.get('current_user')
    if 'current_user' in g and g.get('current_user_uid') == uid:
        return cached
    user = None
    if uid:
        account = Account.query.filter_by(uid=uid).first()
        if account and not account.disabled:
            user = resolve_user(account)
    g.current_user = user
    g.current_user_uid = uid
    return user


def roles_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = current_user()
            if user is None or user.role not in roles:
                logger.warning(f"Access to {f.__name__} denied for {user!r}")
                abort(403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def classes_taught(user):
    """Names of the classes of the user's branch that list them as class teacher."""
    if user is None or not user.cabang:
        return []
    kelas = Kelas.query.filter_by(cabang=user.cabang).all()
    return sorted({k.nama_kelas for k in kelas if k.has_teacher(user.nama)})


# Navigation

MENU = [
    ('Dashboard', [
        ('Dashboard', 'admin.dashboard', ADMIN_PANEL_ROLES),
        ('Beranda', 'home.user_home', TEACHER_ROLES + (SISWA, USER)),
    ]),
    ('Pengaturan', [
        ('Cabang', 'pengaturan.cabang_list', (ADMIN, DIREKTUR, YAYASAN)),
        ('Kelas', 'pengaturan.kelas_list', ADMIN_PANEL_ROLES),
        ('Nomenklatur Keuangan', 'pengaturan.nomenklatur_list', ADMIN_PANEL_ROLES),
        ('Semester / Periode', 'pengaturan.periode_list', ADMIN_PANEL_ROLES),
    ]),
    ('Data Pengguna', [
        ('Guru & Staf', 'people.guru_list', ADMIN_PANEL_ROLES),
        ('Siswa', 'people.siswa_list', ADMIN_PANEL_ROLES),
    ]),
    ('Akademik', [
        ('7 Habits', 'akademik.habit_list', ADMIN_PANEL_ROLES),
        ('Indikator', 'akademik.indikator_group_list', ADMIN_PANEL_ROLES),
        ('Sub Indikator', 'akademik.sub_indikator_list', ADMIN_PANEL_ROLES),
        ('Trilogi', 'akademik.trilogi_group_list', ADMIN_PANEL_ROLES),
        ('Sub Trilogi', 'akademik.sub_trilogi_list', ADMIN_PANEL_ROLES),
        ('Kelompok Usia', 'akademik.kelompok_usia_list', ADMIN_PANEL_ROLES),
        ('Tahap Perkembangan', 'akademik.tahap_list', ADMIN_PANEL_ROLES),
        ('RPPH', 'akademik.rpph_list', STAFF_ROLES),
    ]),
    ('Keuangan', [
        ('Pengajuan', 'keuangan.pengajuan', SUBMISSION_ROLES),
        ('Anggaran', 'keuangan.anggaran', ADMIN_PANEL_ROLES),
        ('Realisasi', 'keuangan.realisasi', ADMIN_PANEL_ROLES),
        ('Arus Kas', 'keuangan.arus_kas', ADMIN_PANEL_ROLES),
    ]),
    ('Informasi', [
        ('Pengumuman', 'informasi.pengumuman_list', ADMIN_PANEL_ROLES),
        ('Kegiatan Sekolah', 'informasi.kegiatan_list', ADMIN_PANEL_ROLES),
        ('Jadwal', 'informasi.jadwal_list', ADMIN_PANEL_ROLES),
        ('Dokumen', 'informasi.dokumen_list', ADMIN_PANEL_ROLES),
    ]),
    ('Penilaian', [
        ('Kategori Penilaian', 'penilaian.kategori_list', ADMIN_PANEL_ROLES),
        ('Kriteria Nilai', 'penilaian.kriteria_list', ADMIN_PANEL_ROLES),
        ('Nilai Indikator', 'penilaian.nilai_indikator_list', STAFF_ROLES),
        ('Nilai Perkembangan', 'penilaian.nilai_perkembangan_list', STAFF_ROLES),
        ('Nilai Trilogi', 'penilaian.nilai_trilogi_list', STAFF_ROLES),
        ('Info Tambahan Rapor', 'penilaian.info_tambahan_list', STAFF_ROLES),
        ('Rapor', 'penilaian.rapor', STAFF_ROLES),
    ]),
    ('Laporan', [
        ('Laporan Bulanan', 'laporan.bulanan_list', ADMIN_PANEL_ROLES),
        ('KPI Guru', 'performance.kpi_list', ADMIN_PANEL_ROLES),
        ('KPI Saya', 'performance.kpi_saya', TEACHER_ROLES),
    ]),
    ('Daycare', [
        ('Aktivitas', 'daycare.aktivitas_list', ADMIN_PANEL_ROLES),
        ('Sub Aktivitas', 'daycare.sub_aktivitas_list', ADMIN_PANEL_ROLES),
        ('Laporan Harian', 'daycare.laporan_harian', STAFF_ROLES),
        ('Pertumbuhan Anak', 'daycare.pertumbuhan_list', STAFF_ROLES),
    ]),
    ('Guru', [
        ('Siswa Saya', 'guru.siswa_saya', TEACHER_ROLES),
        ('Catatan Guru', 'guru.catatan', TEACHER_ROLES),
    ]),
    ('Siswa', [
        ('Nilai Indikator', 'siswa.nilai_indikator', (SISWA,)),
        ('Catatan Guru', 'siswa.catatan', (SISWA,)),
    ]),
    ('Informasi Sekolah', [
        ('Jadwal', 'home.jadwal', TEACHER_ROLES + (SISWA,)),
        ('Kegiatan', 'home.kegiatan', TEACHER_ROLES + (SISWA,)),
        ('Pengumuman', 'home.pengumuman', TEACHER_ROLES + (SISWA,)),
        ('Dokumen', 'home.dokumen', TEACHER_ROLES + (SISWA,)),
    ]),
]


def menu_for(role):
    """Menu sections visible to a role, empty sections dropped."""
    sections = []
    for title, items in MENU:
        visible = [(label, endpoint) for label, endpoint, roles in items if role in roles]
        if visible:
            sections.append((title, visible))
    return sections
