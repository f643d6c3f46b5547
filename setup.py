from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="sis-mainriang",
    version="1.0.0",
    description="SIS Main Riang school administration system",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=[
        'access',
        'admin',
        'akademik',
        'api',
        'app',
        'auth',
        'build',
        'config',
        'crud',
        'daycare',
        'errors',
        'forms',
        'guru',
        'health',
        'home',
        'identity',
        'informasi',
        'keuangan',
        'laporan',
        'models',
        'pengaturan',
        'penilaian',
        'people',
        'performance',
        'reports_pdf',
        'security',
        'siswa',
        'storage',
        'wsgi',
    ],
    include_package_data=True,
    install_requires=[
        'Flask>=2.3.3',
        'Flask-SQLAlchemy>=3.1.1',
        'Flask-WTF>=1.2.1',
        'python-dotenv>=1.0.0',
        'SQLAlchemy>=2.0.43',
        'WTForms>=3.0.1',
        'Werkzeug>=2.3.7',
        'gunicorn>=21.2.0',
        'psycopg2-binary>=2.9.9',
        'bcrypt>=4.0.1',
        'python-jose>=3.3.0',
        'fpdf2>=2.7.8',
    ],
    extras_require={
        'test': [
            'pytest>=7.4',
        ],
    },
    python_requires='>=3.9',
    classifiers=[
        "Programming Language :: Python :: 3",
        "Framework :: Flask",
        "Operating System :: OS Independent",
    ],
    entry_points={
        'console_scripts': [
            'sis-mainriang=wsgi:main',
        ],
    },
)
