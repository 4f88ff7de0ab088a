"""Management command to validate the configured pricing catalogs."""

from django.core.management.base import BaseCommand, CommandError
from django.utils.module_loading import import_string

from django_pricing import conf
from django_pricing.catalog import CatalogVersion, validate_catalog
from django_pricing.exceptions import ConfigurationError
from django_pricing.graph import build_evaluation_order


class Command(BaseCommand):
    help = 'Validate every catalog in PRICING_CATALOGS (dependencies, defaults, cycles)'

    # django_pricing.E001 would stop the command before it lists the errors
    requires_system_checks = []

    def add_arguments(self, parser):
        parser.add_argument(
            '--show-order',
            action='store_true',
            help='Print the evaluation order of each valid catalog',
        )

    def handle(self, *args, **options):
        show_order = options['show_order']
        failures = 0

        for path in conf.get_catalog_paths():
            try:
                catalog = import_string(path)
            except ImportError as e:
                self.stderr.write(f'{path}: cannot import ({e})')
                failures += 1
                continue
            if not isinstance(catalog, CatalogVersion):
                self.stderr.write(f'{path}: not a CatalogVersion')
                failures += 1
                continue

            try:
                validate_catalog(catalog)
            except ConfigurationError as e:
                failures += 1
                self.stderr.write(f'{catalog.version}: {e}')
                for error in e.errors:
                    self.stderr.write(f'  - {error}')
                continue

            self.stdout.write(
                self.style.SUCCESS(f'{catalog.version}: OK ({len(catalog.variables)} variables)')
            )
            if show_order:
                for position, variable_id in enumerate(build_evaluation_order(catalog), start=1):
                    self.stdout.write(f'  {position:>3}. {variable_id}')

        if failures:
            raise CommandError(f'{failures} pricing catalog(s) failed validation')
