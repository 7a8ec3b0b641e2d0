"""
Deployment plan of the synthetic asset system.

Declares every core contract with its constructor arguments and the wiring
steps that connect them, followed by one stage per configured synth and the
depot, arbitrage rewarder and maintenance contracts.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .constants import ZERO_ADDRESS
from .orchestrator import Stage, WiringStep, any_deployed, deployed, family
from .types import ACCOUNT, Call, ComponentDeclaration, PriorCall, Ref

UNIT = 10**18
BASE_SUPPLY = 100_000_000 * UNIT
WEEKLY_INFLATION = 75_000_000 * UNIT // 52
INFLATION_START_DATE = 1551830400
SECONDS_IN_WEEK = 7 * 24 * 60 * 60
MINTING_BUFFER = 24 * 60 * 60


def to_bytes32(key: str) -> bytes:
    """Right-pad a currency key to 32 bytes."""
    raw = key.encode("utf-8")
    if len(raw) > 32:
        raise ValueError(f"Currency key too long: {key}")
    return raw.ljust(32, b"\0")


def weeks_of_inflation(total_supply: int) -> int:
    """Weeks of inflation already minted into ``total_supply``."""
    return max((int(total_supply) - BASE_SUPPLY) // WEEKLY_INFLATION, 0)


def last_mint_time(total_supply: int) -> int:
    """Timestamp of the last inflation mint implied by ``total_supply``."""
    weeks = weeks_of_inflation(total_supply)
    return INFLATION_START_DATE + weeks * SECONDS_IN_WEEK + MINTING_BUFFER


@dataclass(frozen=True)
class SynthDefinition:
    """One entry of the synth list."""

    name: str  # Currency key, e.g. "sUSD"
    subclass: Optional[str] = None  # e.g. "PurgeableSynth"
    aggregator: Optional[str] = None  # Price aggregator address


@dataclass(frozen=True)
class SystemParameters:
    """
    Inputs of the core contracts' constructors.

    Supply, exchange fee rate, price, oracle and inflation schedule are read
    from the contracts they replace; the values here only apply when the
    manifest has no previous address to read from.
    """

    network: str = "local"
    # ExchangeRates oracle; None keeps the current one (the account on first deploy)
    oracle: Optional[str] = None
    snx_key: str = "OKS"
    snx_price: int = UNIT // 5  # 0.2
    initial_supply: int = BASE_SUPPLY
    initial_issuance: int = BASE_SUPPLY
    exchange_fee_rate: int = 3 * UNIT // 1000  # 0.003
    last_mint_event: int = 0
    current_week: int = 0
    rate_stale_period: int = 60 * 30
    uniswap_exchange: Optional[str] = None  # Exchange ArbRewarder trades against
    arb_synth: str = "sTRX"  # Synth whose proxy ArbRewarder rewards arbitrage on


def _step(
    contract: str, read: str, expected: Any, write: str, *args: Any, **kwargs: Any
) -> WiringStep:
    write_args = args if args else (expected,)
    return WiringStep(
        contract=contract,
        read=read,
        expected=expected,
        write=write,
        write_args=tuple(write_args),
        **kwargs,
    )


class _Declarations:
    """Builds declarations, taking deploy flags from the contract configuration."""

    def __init__(self, config: Mapping[str, Mapping[str, Any]]):
        self.config = config

    def __call__(
        self,
        name: str,
        source: Optional[str] = None,
        args: Sequence[Any] = (),
        deps: Sequence[str] = (),
        force: bool = False,
        library: bool = False,
        confirm_prompt: Optional[Callable[[Sequence[Any]], str]] = None,
    ) -> ComponentDeclaration:
        flags = self.config.get(name)
        return ComponentDeclaration(
            name=name,
            source=source,
            args=tuple(args),
            deps=tuple(deps),
            deploy=bool(flags.get("deploy")) if flags is not None else None,
            force=force and flags is None,
            library=library,
            confirm_prompt=confirm_prompt,
        )


def _core_stages(declare: _Declarations, params: SystemParameters) -> List[Stage]:
    exchange_rates_steps = ()
    if params.network == "mainnet":
        exchange_rates_steps = (
            _step(
                "ExchangeRates",
                "rateStalePeriod",
                params.rate_stale_period,
                "setRateStalePeriod",
                when=deployed("ExchangeRates"),
            ),
        )

    synthetix_proxy = Call("Synthetix", "proxy")
    snx_key = to_bytes32(params.snx_key)
    oracle = params.oracle or PriorCall("ExchangeRates", "oracle", default=ACCOUNT)
    snx_price = PriorCall(
        "ExchangeRates", "rateForCurrency", args=(snx_key,), default=params.snx_price
    )
    synthetix_supply = PriorCall("Synthetix", "totalSupply", default=params.initial_supply)

    return [
        Stage("libraries", components=(declare("SafeDecimalMath", library=True),)),
        Stage(
            "exchange-rates",
            components=(
                declare(
                    "ExchangeRates",
                    args=(ACCOUNT, oracle, [snx_key], [snx_price]),
                ),
            ),
            steps=exchange_rates_steps,
        ),
        Stage(
            "escrow-and-state",
            components=(
                declare("RewardEscrow", args=(ACCOUNT, ZERO_ADDRESS, ZERO_ADDRESS)),
                declare("SynthetixEscrow", args=(ACCOUNT, ZERO_ADDRESS)),
                declare("SynthetixState", args=(ACCOUNT, ACCOUNT)),
                declare("ProxyFeePool", source="Proxy", args=(ACCOUNT,)),
                declare("DelegateApprovals", args=(ACCOUNT, ZERO_ADDRESS)),
                declare("FeePoolEternalStorage", args=(ACCOUNT, ZERO_ADDRESS)),
            ),
        ),
        Stage(
            "fee-pool",
            components=(
                declare(
                    "FeePool",
                    deps=("ProxyFeePool",),
                    args=(
                        Ref("ProxyFeePool"),
                        ACCOUNT,
                        ZERO_ADDRESS,  # Synthetix
                        ZERO_ADDRESS,  # FeePoolState
                        Ref("FeePoolEternalStorage"),
                        Ref("SynthetixState"),
                        Ref("RewardEscrow"),
                        ZERO_ADDRESS,
                        PriorCall(
                            "FeePool", "exchangeFeeRate", default=params.exchange_fee_rate
                        ),
                    ),
                ),
            ),
            steps=(
                _step("ProxyFeePool", "target", Ref("FeePool"), "setTarget"),
                _step(
                    "FeePoolEternalStorage",
                    "associatedContract",
                    Ref("FeePool"),
                    "setAssociatedContract",
                ),
                _step("FeePool", "delegates", Ref("DelegateApprovals"), "setDelegateApprovals"),
                _step(
                    "DelegateApprovals",
                    "associatedContract",
                    Ref("FeePool"),
                    "setAssociatedContract",
                ),
            ),
        ),
        Stage(
            "fee-pool-state",
            components=(
                declare("FeePoolState", deps=("FeePool",), args=(ACCOUNT, Ref("FeePool"))),
            ),
            steps=(
                _step("FeePool", "feePoolState", Ref("FeePoolState"), "setFeePoolState"),
                _step("FeePoolState", "feePool", Ref("FeePool"), "setFeePool"),
            ),
        ),
        Stage(
            "rewards-distribution",
            components=(
                declare(
                    "RewardsDistribution",
                    deps=("RewardEscrow", "ProxyFeePool"),
                    args=(
                        ACCOUNT,
                        ZERO_ADDRESS,  # authority (Synthetix)
                        ZERO_ADDRESS,  # Synthetix proxy
                        Ref("RewardEscrow"),
                        Ref("ProxyFeePool"),
                    ),
                ),
            ),
            steps=(
                _step(
                    "FeePool", "rewardsAuthority", Ref("RewardsDistribution"), "setRewardsAuthority"
                ),
            ),
        ),
        Stage(
            "synthetix",
            components=(
                declare(
                    "SupplySchedule",
                    args=(
                        ACCOUNT,
                        PriorCall(
                            "Synthetix",
                            "totalSupply",
                            default=params.last_mint_event,
                            transform=last_mint_time,
                        ),
                        PriorCall(
                            "Synthetix",
                            "totalSupply",
                            default=params.current_week,
                            transform=weeks_of_inflation,
                        ),
                    ),
                ),
                declare("ProxySynthetix", source="Proxy", args=(ACCOUNT,)),
                declare("TokenStateSynthetix", source="TokenState", args=(ACCOUNT, ACCOUNT)),
                declare(
                    "Synthetix",
                    deps=(
                        "ProxySynthetix",
                        "TokenStateSynthetix",
                        "SynthetixState",
                        "ExchangeRates",
                        "FeePool",
                        "SupplySchedule",
                        "RewardEscrow",
                        "SynthetixEscrow",
                        "RewardsDistribution",
                    ),
                    args=(
                        Ref("ProxySynthetix"),
                        Ref("TokenStateSynthetix"),
                        Ref("SynthetixState"),
                        ACCOUNT,
                        Ref("ExchangeRates"),
                        Ref("FeePool"),
                        Ref("SupplySchedule"),
                        Ref("RewardEscrow"),
                        Ref("SynthetixEscrow"),
                        Ref("RewardsDistribution"),
                        synthetix_supply,
                    ),
                ),
            ),
            steps=(
                _step("ProxySynthetix", "target", Ref("Synthetix"), "setTarget"),
                _step("Synthetix", "feePool", Ref("FeePool"), "setFeePool"),
                _step("FeePool", "synthetix", Ref("Synthetix"), "setSynthetix"),
                _step("Synthetix", "exchangeRates", Ref("ExchangeRates"), "setExchangeRates"),
                # Only reset the token state balance when it was redeployed
                WiringStep(
                    contract="TokenStateSynthetix",
                    read="balanceOf",
                    read_args=(ACCOUNT,),
                    expected=params.initial_issuance,
                    write="setBalanceOf",
                    write_args=(ACCOUNT, params.initial_issuance),
                    when=deployed("TokenStateSynthetix"),
                ),
                _step(
                    "TokenStateSynthetix",
                    "associatedContract",
                    Ref("Synthetix"),
                    "setAssociatedContract",
                ),
                _step(
                    "SynthetixState",
                    "associatedContract",
                    Ref("Synthetix"),
                    "setAssociatedContract",
                ),
                _step("RewardEscrow", "synthetix", Ref("Synthetix"), "setSynthetix"),
                _step("RewardEscrow", "feePool", Ref("FeePool"), "setFeePool"),
                _step(
                    "SynthetixEscrow",
                    "synthetix",
                    Ref("Synthetix"),
                    "setSynthetix",
                    when=any_deployed("Synthetix", "SynthetixEscrow"),
                ),
                _step("SupplySchedule", "synthetixProxy", synthetix_proxy, "setSynthetixProxy"),
            ),
        ),
        Stage(
            "escrow-checker",
            components=(
                declare("EscrowChecker", deps=("SynthetixEscrow",), args=(Ref("SynthetixEscrow"),)),
            ),
        ),
        Stage(
            "integration-proxy",
            components=(declare("ProxyERC20", deps=("Synthetix",), args=(ACCOUNT,)),),
            steps=(
                _step("ProxyERC20", "target", Ref("Synthetix"), "setTarget"),
                _step("Synthetix", "integrationProxy", Ref("ProxyERC20"), "setIntegrationProxy"),
                _step("RewardsDistribution", "authority", Ref("Synthetix"), "setAuthority"),
                _step(
                    "RewardsDistribution", "synthetixProxy", Ref("ProxyERC20"), "setSynthetixProxy"
                ),
            ),
        ),
    ]


def _supply_prompt(network: str, name: str) -> Callable[[Sequence[Any]], str]:
    """Prompt showing the supply a replacement synth is deployed with (its last arg)."""

    def prompt(args: Sequence[Any]) -> str:
        return (
            f"WARNING: Please confirm - {network}:\n"
            f"{name} totalSupply is {args[-1]}\n"
            "Do you want to continue?"
        )

    return prompt


def _synth_stage(
    declare: _Declarations, synth: SynthDefinition, add_new_synths: bool, network: str
) -> Stage:
    key = synth.name
    key_bytes = to_bytes32(key)
    token_state = f"TokenState{key}"
    proxy = f"Proxy{key}"
    name = f"Synth{key}"
    source = synth.subclass or "Synth"

    original_supply = PriorCall(name, "totalSupply", default=0)
    additional_args = {
        "Synth": (original_supply,),
        "PurgeableSynth": (Ref("ExchangeRates"), original_supply),
    }

    steps = [
        _step(token_state, "associatedContract", Ref(name), "setAssociatedContract"),
        _step(proxy, "target", Ref(name), "setTarget"),
        _step(name, "proxy", Ref(proxy), "setProxy"),
        WiringStep(
            contract="Synthetix",
            read="synths",
            read_args=(key_bytes,),
            expected=Ref(name),
            write="addSynth",
            write_args=(Ref(name),),
        ),
        _step(name, "synthetixProxy", Call("Synthetix", "proxy"), "setSynthetixProxy"),
        _step(name, "feePoolProxy", Ref("ProxyFeePool"), "setFeePoolProxy"),
    ]
    if synth.aggregator:
        steps.append(
            WiringStep(
                contract="ExchangeRates",
                read="aggregators",
                read_args=(key_bytes,),
                expected=synth.aggregator,
                write="addAggregator",
                write_args=(key_bytes, synth.aggregator),
            )
        )
    if synth.subclass == "PurgeableSynth":
        steps.append(_step(name, "exchangeRates", Ref("ExchangeRates"), "setExchangeRates"))

    return Stage(
        f"synth-{key}",
        components=(
            declare(
                token_state,
                source="TokenState",
                args=(ACCOUNT, ZERO_ADDRESS),
                force=add_new_synths,
            ),
            declare(proxy, source="ProxyERC20", args=(ACCOUNT,), force=add_new_synths),
            declare(
                name,
                source=source,
                deps=(token_state, proxy, "Synthetix", "FeePool"),
                args=(
                    Ref(proxy),
                    Ref(token_state),
                    Call("Synthetix", "proxy"),
                    Ref("ProxyFeePool"),
                    f"Synth {key}",
                    key,
                    ACCOUNT,
                    key_bytes,
                )
                + additional_args.get(source, ()),
                force=add_new_synths,
                confirm_prompt=(
                    _supply_prompt(network, name) if source in additional_args else None
                ),
            ),
        ),
        steps=tuple(steps),
    )


def _tail_stages(declare: _Declarations, params: SystemParameters) -> List[Stage]:
    arb_rewarder_steps = [
        _step("ArbRewarder", "exchangeRates", Ref("ExchangeRates"), "setExchangeRates"),
        _step("ArbRewarder", "synthetixProxy", Ref("ProxyERC20"), "setSynthetix"),
    ]
    if params.uniswap_exchange:
        arb_rewarder_steps.append(
            _step(
                "ArbRewarder", "uniswapAddress", params.uniswap_exchange, "setUniswapExchange"
            )
        )
    arb_rewarder_steps.append(
        _step("ArbRewarder", "synth", Ref(f"Proxy{params.arb_synth}"), "setSynthAddress")
    )

    return [
        Stage(
            "depot",
            components=(
                declare(
                    "Depot",
                    deps=("ProxySynthetix", "SynthsUSD", "FeePool"),
                    args=(ACCOUNT, ACCOUNT, Ref("Synthetix"), Ref("SynthsUSD")),
                ),
            ),
            steps=(_step("Depot", "synth", Ref("SynthsUSD"), "setSynth"),),
        ),
        Stage(
            "arb-rewarder",
            components=(
                declare("ArbRewarder", deps=("Synthetix", "ExchangeRates"), args=(ACCOUNT,)),
            ),
            steps=tuple(arb_rewarder_steps),
        ),
        Stage("dapp-maintenance", components=(declare("DappMaintenance", args=(ACCOUNT,)),)),
    ]


def build_system_plan(
    synths: Sequence[SynthDefinition],
    config: Mapping[str, Mapping[str, Any]],
    params: Optional[SystemParameters] = None,
    add_new_synths: bool = False,
) -> List[Stage]:
    """
    Build the full deployment plan.

    Args:
        synths: Synth list, one family stage per entry
        config: Contract flags (name -> {"deploy": bool}); contracts absent
                from it are skipped unless forced
        params: Constructor parameters, used where no previous deployment
                holds the value (defaults to SystemParameters())
        add_new_synths: Deploy synths that have no configuration entry yet

    Returns:
        Ordered list of stages
    """
    params = params or SystemParameters()
    declare = _Declarations(config)
    return (
        _core_stages(declare, params)
        + family(
            synths, lambda synth: _synth_stage(declare, synth, add_new_synths, params.network)
        )
        + _tail_stages(declare, params)
    )


def synths_from_list(raw: Sequence[Dict[str, Any]]) -> List[SynthDefinition]:
    """Convert a parsed synths.json list into SynthDefinitions."""
    return [
        SynthDefinition(
            name=entry["name"],
            subclass=entry.get("subclass"),
            aggregator=entry.get("aggregator"),
        )
        for entry in raw
    ]
