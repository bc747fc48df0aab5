"""Binutils 2.45 package definition.

MLFS metadata: stage: cross-toolchain, variant: Pass 1
"""

from lpkg.pkgs.package import OptimizationSettings, PackageDefinition


def definition() -> PackageDefinition:
    return PackageDefinition(
        name='Binutils',
        version='2.45',
        source='https://sourceware.org/pub/binutils/releases/binutils-2.45.tar.xz',
        md5='dee5b4267e0305a99a3c9d6131f45759',
        configure_args=[],
        build_commands=[
            'mkdir -v build',
            'cd       build',
            '../configure --prefix=$LFS/tools \\',
            '--with-sysroot=$LFS \\',
            '--target=$LFS_TGT   \\',
            '--disable-nls       \\',
            '--enable-gprofng=no \\',
            '--disable-werror    \\',
            '--enable-new-dtags  \\',
            '--enable-default-hash-style=gnu',
            'make',
        ],
        install_commands=[
            'make install',
        ],
        dependencies=[],
        optimizations=OptimizationSettings(
            enable_lto=True,
            enable_pgo=True,
            cflags=[
                '-O3',
                '-flto',
            ],
            ldflags=[
                '-flto',
            ],
            profdata=None,
        ),
    )
