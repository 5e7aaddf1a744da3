"""
Flask CLI tasks.

    flask --app run eco-score update-all
    flask --app run eco-score update <product_id>
    flask --app run search-index sync
    flask --app run catalog seed
"""

import click
from flask import Flask
from flask.cli import AppGroup

from ecocatalog import current_services
from ecocatalog.errors import CatalogError, DuplicateProductError
from ecocatalog.services.search_index import sync_all_products

eco_score_cli = AppGroup('eco-score', help='Eco score maintenance.')
search_index_cli = AppGroup('search-index', help='Search index maintenance.')
catalog_cli = AppGroup('catalog', help='Catalog data tasks.')

DEMO_PRODUCT = {
    'title': 'Shampoing solide bio',
    'description': ('Shampoing solide certifié bio, fabriqué en France, '
                    'sans emballage plastique et rechargeable.'),
    'slug': 'shampoing-solide-bio-demo',
    'brand': 'Savonnerie Locale',
    'category': 'hygiène',
    'tags': ['bio', 'zéro déchet', 'made in france'],
    'zones_dispo': ['FR', 'BE'],
    'verified_status': 'verified',
}

DEMO_PARTNER = {
    'name': 'Boutique Verte',
    'website': 'https://boutique-verte.example.com',
}


@eco_score_cli.command('update-all')
def update_all():
    """Rescore every product."""
    report = current_services().eco_scores.resolve_all_and_persist()
    click.echo(f"✓ {report.updated} updated, {report.errors} errors ({report.total} products)")
    if report.errors:
        raise SystemExit(1)


@eco_score_cli.command('update')
@click.argument('product_id')
def update_one(product_id):
    """Rescore one product."""
    try:
        result = current_services().eco_scores.resolve_and_persist(product_id)
    except CatalogError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"✓ {product_id}: eco_score={result.eco_score:.2f} "
               f"confidence={result.confidence_pct}% ({result.source})")


@search_index_cli.command('sync')
def sync():
    """Replace the search index content with the catalog."""
    services = current_services()
    try:
        stats = sync_all_products(services.search_index, services.store)
    except CatalogError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"✓ {stats['pushed']} records pushed "
               f"({stats['with_images']} with images, {stats['without_images']} without, "
               f"{stats['skipped']} skipped)")


@catalog_cli.command('seed')
def seed():
    """Insert a demo product, a partner and a tracking link."""
    services = current_services()
    try:
        product = services.products.create_product(DEMO_PRODUCT)
    except DuplicateProductError:
        click.echo("Demo product already present, nothing to do")
        return

    partner = services.tracking.create_partner(DEMO_PARTNER)
    link, _ = services.tracking.upsert_link({
        'url': f"{DEMO_PARTNER['website']}/p/{product['slug']}",
        'product_id': product['id'],
        'partner_id': partner['id'],
    })
    click.echo(f"✓ product {product['id']} (eco_score {product['eco_score']:.2f})")
    click.echo(f"✓ partner {partner['id']}, tracking link /api/track/{link['id']}")


def register_cli(app: Flask) -> None:
    app.cli.add_command(eco_score_cli)
    app.cli.add_command(search_index_cli)
    app.cli.add_command(catalog_cli)
