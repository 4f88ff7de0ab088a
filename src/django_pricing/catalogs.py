"""Built-in catalogs for wine orders.

WINE_CASE_V1, private client order (all amounts USD unless noted):

    supplierSubtotal = supplierCasePrice x caseQuantity
    landedDutyFree   = supplierSubtotal / (1 - ccMarginPct)
    importDuty       = landedDutyFree x importDutyPct
    transferCost     = landedDutyFree x transferCostPct
    dutyPaidLanded   = landedDutyFree + importDuty + transferCost
    afterDistributor = dutyPaidLanded / (1 - distributorMarginPct)
    vat              = afterDistributor x vatPct
    total            = afterDistributor + vat
    totalAed         = total x usdToAedRate

B2B_V1, trade sale: total = supplierSubtotal / (1 - ccMarginPct).

POCKET_CELLAR_V1, bottles sourced from CultX (flown in, charged per
bottle) or from local inventory (no import logistics). Logistics are
added before duty, and a sales commission is added before VAT:

    landedDutyFree = supplierPrice / (1 - ccMarginPct) + logisticsAmount
    preVat         = afterDistributor + salesCommission
    total          = preVat + preVat x vatPct

Margins are applied by division, so a 2.5% margin is 2.5% of the price
it produces. Margin variables and intermediate amounts are internal and
hidden from the partner view, which shows landed duty free as the
subtotal followed by duty, logistics, VAT and total.
"""

from decimal import Decimal

from django_pricing.catalog import CatalogVersion
from django_pricing.money import apply_margin, percent_of
from django_pricing.values import ValueType, computed_variable, input_variable, overridable_variable


WINE_CASE_V1 = CatalogVersion(
    version='wine-case-v1',
    currency='USD',
    total_variable='total',
    description='Private client order: supplier case price to delivered price incl. VAT',
    variables=(
        # Inputs
        input_variable(
            'supplierCasePrice', ValueType.CURRENCY,
            min_value=Decimal('0'), label='Supplier price per case',
        ),
        input_variable(
            'caseQuantity', ValueType.INTEGER,
            min_value=1, label='Number of cases',
        ),

        # Overridable rates
        overridable_variable(
            'ccMarginPct', ValueType.PERCENTAGE, Decimal('0.025'),
            label='C&C margin', internal=True,
        ),
        overridable_variable(
            'importDutyPct', ValueType.PERCENTAGE, Decimal('0.20'),
            label='Import duty',
        ),
        overridable_variable(
            'transferCostPct', ValueType.PERCENTAGE, Decimal('0.0075'),
            label='Transfer cost',
        ),
        overridable_variable(
            'distributorMarginPct', ValueType.PERCENTAGE, Decimal('0.075'),
            label='Distributor margin', internal=True,
        ),
        overridable_variable(
            'vatPct', ValueType.PERCENTAGE, Decimal('0.05'),
            label='VAT',
        ),
        overridable_variable(
            'usdToAedRate', ValueType.DECIMAL, Decimal('3.6725'),
            min_value=Decimal('0'), label='USD to AED exchange rate',
        ),

        # Price chain
        computed_variable(
            'supplierSubtotal', ValueType.CURRENCY,
            {'supplierCasePrice', 'caseQuantity'},
            lambda v: v['supplierCasePrice'] * v['caseQuantity'],
            label='Supplier subtotal', internal=True,
        ),
        computed_variable(
            'landedDutyFree', ValueType.CURRENCY,
            {'supplierSubtotal', 'ccMarginPct'},
            lambda v: apply_margin(v['supplierSubtotal'], v['ccMarginPct']),
            label='Landed duty free',
        ),
        computed_variable(
            'ccMarginAmount', ValueType.CURRENCY,
            {'landedDutyFree', 'supplierSubtotal'},
            lambda v: v['landedDutyFree'] - v['supplierSubtotal'],
            label='C&C margin amount', internal=True,
        ),
        computed_variable(
            'importDuty', ValueType.CURRENCY,
            {'landedDutyFree', 'importDutyPct'},
            lambda v: percent_of(v['landedDutyFree'], v['importDutyPct']),
            label='Duty',
        ),
        computed_variable(
            'transferCost', ValueType.CURRENCY,
            {'landedDutyFree', 'transferCostPct'},
            lambda v: percent_of(v['landedDutyFree'], v['transferCostPct']),
            label='Logistics',
        ),
        computed_variable(
            'dutyPaidLanded', ValueType.CURRENCY,
            {'landedDutyFree', 'importDuty', 'transferCost'},
            lambda v: v['landedDutyFree'] + v['importDuty'] + v['transferCost'],
            label='Duty paid landed', internal=True,
        ),
        computed_variable(
            'afterDistributor', ValueType.CURRENCY,
            {'dutyPaidLanded', 'distributorMarginPct'},
            lambda v: apply_margin(v['dutyPaidLanded'], v['distributorMarginPct']),
            label='After distributor margin', internal=True,
        ),
        computed_variable(
            'distributorMarginAmount', ValueType.CURRENCY,
            {'afterDistributor', 'dutyPaidLanded'},
            lambda v: v['afterDistributor'] - v['dutyPaidLanded'],
            label='Distributor margin amount', internal=True,
        ),
        computed_variable(
            'vat', ValueType.CURRENCY,
            {'afterDistributor', 'vatPct'},
            lambda v: percent_of(v['afterDistributor'], v['vatPct']),
            label='VAT amount',
        ),
        computed_variable(
            'total', ValueType.CURRENCY,
            {'afterDistributor', 'vat'},
            lambda v: v['afterDistributor'] + v['vat'],
            label='Total (USD)',
        ),
        computed_variable(
            'totalAed', ValueType.CURRENCY,
            {'total', 'usdToAedRate'},
            lambda v: v['total'] * v['usdToAedRate'],
            currency='AED', label='Total (AED)',
        ),
    ),
)


B2B_V1 = CatalogVersion(
    version='b2b-v1',
    currency='USD',
    total_variable='total',
    description='Trade sale: supplier case price plus C&C margin',
    variables=(
        input_variable(
            'supplierCasePrice', ValueType.CURRENCY,
            min_value=Decimal('0'), label='Supplier price per case',
        ),
        input_variable(
            'caseQuantity', ValueType.INTEGER,
            min_value=1, label='Number of cases',
        ),
        overridable_variable(
            'ccMarginPct', ValueType.PERCENTAGE, Decimal('0.05'),
            label='C&C margin', internal=True,
        ),
        overridable_variable(
            'usdToAedRate', ValueType.DECIMAL, Decimal('3.6725'),
            min_value=Decimal('0'), label='USD to AED exchange rate',
        ),
        computed_variable(
            'supplierSubtotal', ValueType.CURRENCY,
            {'supplierCasePrice', 'caseQuantity'},
            lambda v: v['supplierCasePrice'] * v['caseQuantity'],
            label='Supplier subtotal', internal=True,
        ),
        computed_variable(
            'total', ValueType.CURRENCY,
            {'supplierSubtotal', 'ccMarginPct'},
            lambda v: apply_margin(v['supplierSubtotal'], v['ccMarginPct']),
            label='Total (USD)',
        ),
        computed_variable(
            'ccMarginAmount', ValueType.CURRENCY,
            {'total', 'supplierSubtotal'},
            lambda v: v['total'] - v['supplierSubtotal'],
            label='C&C margin amount', internal=True,
        ),
        computed_variable(
            'totalAed', ValueType.CURRENCY,
            {'total', 'usdToAedRate'},
            lambda v: v['total'] * v['usdToAedRate'],
            currency='AED', label='Total (AED)',
        ),
    ),
)


SOURCE_CULTX = 'cultx'
SOURCE_LOCAL_INVENTORY = 'local_inventory'

LOGISTICS_AIR = 'air'
LOGISTICS_NONE = 'none'


def _logistics_type(v):
    if v['productSource'] == SOURCE_CULTX:
        return LOGISTICS_AIR
    return LOGISTICS_NONE


def _logistics_per_bottle(v):
    if v['logisticsType'] == LOGISTICS_AIR:
        return v['logisticsAirPerBottle']
    return Decimal('0')


POCKET_CELLAR_V1 = CatalogVersion(
    version='pocket-cellar-v1',
    currency='USD',
    total_variable='total',
    description='Pocket Cellar: bottles from CultX or local inventory, incl. sales commission and VAT',
    variables=(
        # Inputs
        input_variable(
            'supplierPrice', ValueType.CURRENCY,
            min_value=Decimal('0'), label='Supplier price',
        ),
        input_variable(
            'bottleCount', ValueType.INTEGER,
            min_value=1, label='Number of bottles',
        ),
        input_variable(
            'productSource', ValueType.ENUM,
            choices=(SOURCE_CULTX, SOURCE_LOCAL_INVENTORY), label='Product source',
        ),

        # Overridable rates
        overridable_variable(
            'ccMarginPct', ValueType.PERCENTAGE, Decimal('0.05'),
            label='C&C margin', internal=True,
        ),
        overridable_variable(
            'logisticsAirPerBottle', ValueType.CURRENCY, Decimal('20.00'),
            min_value=Decimal('0'), label='Air logistics per bottle', internal=True,
        ),
        overridable_variable(
            'importDutyPct', ValueType.PERCENTAGE, Decimal('0.20'),
            label='Import duty',
        ),
        overridable_variable(
            'transferCostPct', ValueType.PERCENTAGE, Decimal('0.0075'),
            label='Transfer cost',
        ),
        overridable_variable(
            'distributorMarginPct', ValueType.PERCENTAGE, Decimal('0.075'),
            label='Distributor margin', internal=True,
        ),
        overridable_variable(
            'salesCommissionPct', ValueType.PERCENTAGE, Decimal('0.02'),
            label='Sales commission', internal=True,
        ),
        overridable_variable(
            'vatPct', ValueType.PERCENTAGE, Decimal('0.05'),
            label='VAT',
        ),
        overridable_variable(
            'usdToAedRate', ValueType.DECIMAL, Decimal('3.6725'),
            min_value=Decimal('0'), label='USD to AED exchange rate',
        ),

        # Price chain
        computed_variable(
            'afterCcMargin', ValueType.CURRENCY,
            {'supplierPrice', 'ccMarginPct'},
            lambda v: apply_margin(v['supplierPrice'], v['ccMarginPct']),
            label='After C&C margin', internal=True,
        ),
        computed_variable(
            'ccMarginAmount', ValueType.CURRENCY,
            {'afterCcMargin', 'supplierPrice'},
            lambda v: v['afterCcMargin'] - v['supplierPrice'],
            label='C&C margin amount', internal=True,
        ),
        computed_variable(
            'logisticsType', ValueType.ENUM,
            {'productSource'},
            _logistics_type,
            choices=(LOGISTICS_AIR, LOGISTICS_NONE), label='Logistics',
        ),
        computed_variable(
            'logisticsPerBottle', ValueType.CURRENCY,
            {'logisticsType', 'logisticsAirPerBottle'},
            _logistics_per_bottle,
            label='Logistics per bottle', internal=True,
        ),
        computed_variable(
            'logisticsAmount', ValueType.CURRENCY,
            {'logisticsPerBottle', 'bottleCount'},
            lambda v: v['logisticsPerBottle'] * v['bottleCount'],
            label='Import logistics', internal=True,
        ),
        computed_variable(
            'landedDutyFree', ValueType.CURRENCY,
            {'afterCcMargin', 'logisticsAmount'},
            lambda v: v['afterCcMargin'] + v['logisticsAmount'],
            label='Landed duty free',
        ),
        computed_variable(
            'importDuty', ValueType.CURRENCY,
            {'landedDutyFree', 'importDutyPct'},
            lambda v: percent_of(v['landedDutyFree'], v['importDutyPct']),
            label='Duty',
        ),
        computed_variable(
            'transferCost', ValueType.CURRENCY,
            {'landedDutyFree', 'transferCostPct'},
            lambda v: percent_of(v['landedDutyFree'], v['transferCostPct']),
            label='Transfer cost', internal=True,
        ),
        computed_variable(
            'logisticsTotal', ValueType.CURRENCY,
            {'logisticsAmount', 'transferCost'},
            lambda v: v['logisticsAmount'] + v['transferCost'],
            label='Logistics',
        ),
        computed_variable(
            'dutyPaidLanded', ValueType.CURRENCY,
            {'landedDutyFree', 'importDuty', 'transferCost'},
            lambda v: v['landedDutyFree'] + v['importDuty'] + v['transferCost'],
            label='Duty paid landed', internal=True,
        ),
        computed_variable(
            'afterDistributor', ValueType.CURRENCY,
            {'dutyPaidLanded', 'distributorMarginPct'},
            lambda v: apply_margin(v['dutyPaidLanded'], v['distributorMarginPct']),
            label='After distributor margin', internal=True,
        ),
        computed_variable(
            'distributorMarginAmount', ValueType.CURRENCY,
            {'afterDistributor', 'dutyPaidLanded'},
            lambda v: v['afterDistributor'] - v['dutyPaidLanded'],
            label='Distributor margin amount', internal=True,
        ),
        computed_variable(
            'salesCommission', ValueType.CURRENCY,
            {'afterDistributor', 'salesCommissionPct'},
            lambda v: percent_of(v['afterDistributor'], v['salesCommissionPct']),
            label='Sales commission', internal=True,
        ),
        computed_variable(
            'preVat', ValueType.CURRENCY,
            {'afterDistributor', 'salesCommission'},
            lambda v: v['afterDistributor'] + v['salesCommission'],
            label='Pre-VAT', internal=True,
        ),
        computed_variable(
            'vat', ValueType.CURRENCY,
            {'preVat', 'vatPct'},
            lambda v: percent_of(v['preVat'], v['vatPct']),
            label='VAT amount',
        ),
        computed_variable(
            'total', ValueType.CURRENCY,
            {'preVat', 'vat'},
            lambda v: v['preVat'] + v['vat'],
            label='Total (USD)',
        ),
        computed_variable(
            'totalAed', ValueType.CURRENCY,
            {'total', 'usdToAedRate'},
            lambda v: v['total'] * v['usdToAedRate'],
            currency='AED', label='Total (AED)',
        ),
    ),
)
