# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Storefront Integration Module - Admin API Connectivity
# ============================================================================
#
# Components:
#   - AdminCapability / AdminGraphQLClient: authorized GraphQL execution
#   - RemoteProductGateway: temporary product create/delete mutations
#   - Global id and cart helpers
#
# ============================================================================

from app.storefront.admin_client import (
    AdminCapability,
    AdminGraphQLClient,
    ExponentialBackoff,
    GraphQLRequest,
    GraphQLResponse,
)
from app.storefront.global_id import (
    GID_PREFIX,
    extract_local_id,
    is_global_id,
    to_global_id,
)
from app.storefront.product_gateway import (
    RemoteProductGateway,
    format_money,
    normalize_image_url,
    render_description_html,
    render_title,
)
from app.storefront.cart import is_temp_product, prepare_cart_item

__all__ = [
    'AdminCapability',
    'AdminGraphQLClient',
    'ExponentialBackoff',
    'GraphQLRequest',
    'GraphQLResponse',
    'GID_PREFIX',
    'extract_local_id',
    'is_global_id',
    'to_global_id',
    'RemoteProductGateway',
    'format_money',
    'normalize_image_url',
    'render_description_html',
    'render_title',
    'is_temp_product',
    'prepare_cart_item',
]
