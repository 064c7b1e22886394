from __future__ import annotations


def _token_items_by_shop():
    """Itens do grupo 'Senhas' (dinâmico por Shop ativa)."""
    from tokenman.models import Shop

    items = [
        {
            "title": "Todas as Senhas",
            "icon": "confirmation_number",
            "link": "/admin/tokenman/token/?status__exact=pending",
        },
    ]

    for shop in Shop.objects.filter(is_active=True).order_by("name", "code"):
        items.append(
            {
                "title": shop.name or shop.code,
                "icon": "storefront",
                "link": f"/admin/tokenman/token/?shop__id__exact={shop.pk}&status__exact=pending",
            }
        )

    return items


def get_sidebar_navigation(request):
    """
    Retorna `UNFOLD['SIDEBAR']['navigation']`.

    `SIDEBAR.navigation` pode ser callable, mas `group['items']` precisa ser lista.
    """
    return [
        {
            "title": "Balcão",
            "icon": "hub",
            "items": [
                {
                    "title": "Senhas",
                    "icon": "confirmation_number",
                    "link": "/admin/tokenman/token/?status__exact=pending",
                    "items": _token_items_by_shop(),
                },
            ],
        },
        {
            "title": "Configuração",
            "icon": "settings",
            "items": [
                {
                    "title": "Lojas",
                    "icon": "storefront",
                    "link": "/admin/tokenman/shop/",
                },
                {
                    "title": "Chaves de Idempotência",
                    "icon": "key",
                    "link": "/admin/tokenman/idempotencykey/",
                },
            ],
        },
    ]
