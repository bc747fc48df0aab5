"""Linux 6.16.9 package definition.

MLFS metadata: stage: cross-toolchain, variant: API Headers
"""

from lpkg.pkgs.package import OptimizationSettings, PackageDefinition


def definition() -> PackageDefinition:
    return PackageDefinition(
        name='Linux',
        version='6.16.9',
        source=None,
        md5=None,
        configure_args=[],
        build_commands=[
            'make mrproper',
            'make headers',
            "find usr/include -type f ! -name '*.h' -delete",
            'cp -rv usr/include $LFS/usr',
        ],
        install_commands=[],
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
