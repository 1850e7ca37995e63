"""
Static KPI catalog.

Maps each network technology to the KPI keys its table exposes, and each
KPI key to display metadata (display name and search synonyms).

The catalog is built once at import time and never mutated. Note that
query validation checks KPI keys against the union of every technology's
keys (see all_kpi_keys), not against the selected technology's own set.
"""
from enum import Enum as PyEnum
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict


class Technology(str, PyEnum):
    GSM = "gsm"
    UMTS = "umts"
    LMBB = "lmbb"


class KPIMetadata(BaseModel):
    """Display metadata for one KPI key."""
    model_config = ConfigDict(frozen=True)

    display_name: str
    synonyms: tuple[str, ...] = ()


TABLE_KPIS: Mapping[Technology, tuple[str, ...]] = MappingProxyType({
    Technology.GSM: (
        "erlang",
        "tch_availability",
        "hosr_all",
        "dcr",
        "2G_CSSR_IR(%)_MAPS",
    ),
    Technology.UMTS: (
        "rab_drop_rate_cs",
        "payload_total_3g_gbyte",
        "hosr_soft",
        "hsdpa_frame_loss_rate_iub",
        "rtwp_avg_of_dbm_values",
        "throughput_hs_dc_nodeb_kbps",
        "cell_availability_system",
        "cssr_cs",
        "erlang_3g",
        "rab_drop_rate_hs",
    ),
    Technology.LMBB: (
        "erlang_volte",
        "payload_pdcp_total_gbyte",
        "cssr_ps",
        "erab_drop_rate_maps",
        "erab_setup_succ_rate_qci1",
        "erab_drop_rate_volte_qci1",
        "hosr_intra_freq_out",
        "throughput_ue_all_qci_dl_kbps_maps",
        "interference_pusch_avg_maps",
        "4G_Interference_PUCCH_Avg_MAPS",
        "cell_availability_system",
    ),
})


def _meta(display_name: str, *synonyms: str) -> KPIMetadata:
    return KPIMetadata(display_name=display_name, synonyms=synonyms)


KPI_METADATA: Mapping[str, KPIMetadata] = MappingProxyType({
    # GSM
    "erlang": _meta("Erlang Traffic", "erl", "traffic load"),
    "tch_availability": _meta("TCH Availability", "tch avail", "channel availability"),
    "hosr_all": _meta("Handover Success Rate (All)", "hosr", "handover success"),
    "dcr": _meta("Drop Call Rate", "drop rate", "dropped calls"),
    "2G_CSSR_IR(%)_MAPS": _meta("2G CSSR IR (%) (MAPS)", "cssr ir", "2g cssr"),
    # UMTS
    "rab_drop_rate_cs": _meta("RAB Drop Rate (CS)", "cs drop", "rab cs"),
    "payload_total_3g_gbyte": _meta("Total 3G Payload (GB)", "3g payload", "data volume"),
    "hosr_soft": _meta("Handover Success Rate (Soft)", "soft hosr"),
    "hsdpa_frame_loss_rate_iub": _meta("HSDPA Frame Loss Rate (IuB)", "frame loss"),
    "rtwp_avg_of_dbm_values": _meta("RTWP Avg (dBm)", "rtwp", "received power"),
    "throughput_hs_dc_nodeb_kbps": _meta("HS‑DC Throughput (kbps)", "hsdc throughput"),
    "cell_availability_system": _meta("Cell Availability (System)", "cell avail", "availability"),
    "cssr_cs": _meta("CS Call Setup Success Rate", "cssr cs"),
    "erlang_3g": _meta("3G Erlang Traffic", "3g erlang"),
    "rab_drop_rate_hs": _meta("RAB Drop Rate (HS)", "hs drop", "rab hs"),
    # LMBB
    "erlang_volte": _meta("VoLTE Erlang Traffic", "volte erlang"),
    "payload_pdcp_total_gbyte": _meta("PDCP Payload Total (GB)", "pdcp payload"),
    "cssr_ps": _meta("PS Call Setup Success Rate", "cssr ps"),
    "erab_drop_rate_maps": _meta("ERAB Drop Rate (MAPS)", "erab drop"),
    "erab_setup_succ_rate_qci1": _meta("ERAB Setup Success Rate (QCI1)", "erab setup"),
    "erab_drop_rate_volte_qci1": _meta("VoLTE ERAB Drop Rate (QCI1)", "volte erab drop"),
    "hosr_intra_freq_out": _meta("Intra‑Freq Handover Success Rate (Out)", "intra freq hosr"),
    "throughput_ue_all_qci_dl_kbps_maps": _meta("UE Throughput All QCI DL (kbps)", "ue throughput"),
    "interference_pusch_avg_maps": _meta("Avg PUSCH Interference (MAPS)", "pusch interference"),
    "4G_Interference_PUCCH_Avg_MAPS": _meta("Avg PUCCH Interference (MAPS)", "pucch interference"),
})


class KPICatalog:
    """
    Read-only view over the technology table and KPI metadata.

    Safe to share between concurrent requests: every collection it hands out
    is immutable (tuple, frozenset or read-only mapping).
    """

    def __init__(
        self,
        table: Mapping[Technology, tuple[str, ...]],
        metadata: Mapping[str, KPIMetadata],
    ):
        self._table = MappingProxyType({tech: tuple(keys) for tech, keys in table.items()})
        self._allowed = MappingProxyType({tech: frozenset(keys) for tech, keys in table.items()})
        self._metadata = MappingProxyType(dict(metadata))

        # Ordered union, first occurrence wins
        ordered: dict[str, None] = {}
        for keys in self._table.values():
            ordered.update(dict.fromkeys(keys))
        self._ordered_keys = tuple(ordered)
        self._all_keys = frozenset(ordered)

    def technologies(self) -> tuple[Technology, ...]:
        return tuple(self._table)

    def kpis_for(self, technology: Technology | str) -> tuple[str, ...]:
        """KPI keys of a technology in catalog order."""
        return self._table[Technology(technology)]

    def allowed_kpis(self, technology: Technology | str) -> frozenset[str]:
        return self._allowed[Technology(technology)]

    def all_kpi_keys(self) -> frozenset[str]:
        """
        Union of every technology's KPI keys.

        This is the domain used when validating the `kpi` list of a query, so
        a key that belongs only to another technology is still accepted.
        """
        return self._all_keys

    def metadata(self, kpi_key: str) -> Optional[KPIMetadata]:
        return self._metadata.get(kpi_key)

    def display_label(self, kpi_key: str) -> str:
        meta = self._metadata.get(kpi_key)
        if meta is not None:
            return meta.display_name
        return kpi_key[:1].upper() + kpi_key[1:]

    def search(self, term: str) -> list[str]:
        """
        Find KPI keys whose key, display name or synonyms contain `term`.

        Matching is case-insensitive substring matching with U+2011 read as
        an ASCII hyphen; results follow catalog order. A blank term matches
        nothing.
        """
        needle = _fold(term.strip())
        if not needle:
            return []

        matches = []
        for key in self._ordered_keys:
            meta = self._metadata.get(key)
            haystack = [key]
            if meta is not None:
                haystack.append(meta.display_name)
                haystack.extend(meta.synonyms)
            if any(needle in _fold(text) for text in haystack):
                matches.append(key)
        return matches


def _fold(text: str) -> str:
    return text.replace("\u2011", "-").lower()


# Process-wide singleton
catalog = KPICatalog(TABLE_KPIS, KPI_METADATA)


def allowed_kpis(technology: Technology | str) -> frozenset[str]:
    return catalog.allowed_kpis(technology)


def metadata(kpi_key: str) -> Optional[KPIMetadata]:
    return catalog.metadata(kpi_key)


def all_kpi_keys() -> frozenset[str]:
    return catalog.all_kpi_keys()
