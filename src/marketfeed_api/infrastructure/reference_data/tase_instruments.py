# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Local TASE instruments reference dataset.

Synopsis:
    Static table mapping TASE security numbers to official Yahoo-compatible
    symbols and display names. Consulted first in the TASE waterfall (no
    network) and by the instrument search endpoint.

Layer:
    infrastructure/reference_data
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from marketfeed_api.domain.services.currency_normalizer import InstrumentType

__all__ = ["TASE_INSTRUMENTS", "TaseInstrument", "TaseReferenceData"]

SEARCH_LIMIT: Final[int] = 20


@dataclass(frozen=True, slots=True)
class TaseInstrument:
    """One TASE listing."""

    security_id: str
    name_he: str
    name_en: str
    yahoo_symbol: str
    currency: str
    type: InstrumentType
    sector: str


_ROWS: Final[tuple[tuple[str, str, str, str, str, str, str], ...]] = (
    ("662577", "בנק הפועלים", "Bank Hapoalim", "POLI.TA", "ILS", "equity", "Banks"),
    ("604611", "בנק לאומי", "Bank Leumi", "LUMI.TA", "ILS", "equity", "Banks"),
    ("664101", "בנק דיסקונט", "Bank Discount", "DSCT.TA", "ILS", "equity", "Banks"),
    ("603011", "בנק מזרחי טפחות", "Mizrahi Tefahot Bank", "MZTF.TA", "ILS", "equity", "Banks"),
    ("725261", "בנק ירושלים", "Bank of Jerusalem", "JBNK.TA", "ILS", "equity", "Banks"),
    ("617051", "הבנק הבינלאומי", "First International Bank of Israel", "FTIN.TA", "ILS", "equity", "Banks"),
    ("721166", "בנק אוצר החייל", "Bank Otsar Ha-Hayal", "OTSR.TA", "ILS", "equity", "Banks"),
    ("1119501", "יובנק", "U-Bank", "YUNQ.TA", "ILS", "equity", "Banks"),
    ("572290", "מגדל ביטוח", "Migdal Insurance", "MGDL.TA", "ILS", "equity", "Insurance"),
    ("1118309", "הפניקס", "Phoenix Holdings", "PHOE.TA", "ILS", "equity", "Insurance"),
    ("594092", "כלל ביטוח", "Clal Insurance", "CLIS.TA", "ILS", "equity", "Insurance"),
    ("1110501", "מנורה מבטחים", "Menora Mivtachim Holdings", "MNRV.TA", "ILS", "equity", "Insurance"),
    ("1119183", "הראל", "Harel Insurance Investments", "HARL.TA", "ILS", "equity", "Insurance"),
    ("1111862", "איילון", "Ayalon Insurance", "AYAL.TA", "ILS", "equity", "Insurance"),
    ("230011", "בזק", "Bezeq", "BEZQ.TA", "ILS", "equity", "Telecommunications"),
    ("1101542", "סלקום", "Cellcom", "CEL.TA", "ILS", "equity", "Telecommunications"),
    ("1101109", "פרטנר", "Partner Communications", "PTNR.TA", "ILS", "equity", "Telecommunications"),
    ("1116639", "הוט", "Hot Telecommunications", "HOT.TA", "ILS", "equity", "Telecommunications"),
    ("1120898", "012 סמייל", "012 Smile", "SMLP.TA", "ILS", "equity", "Telecommunications"),
    ("1081124", "אלביט מערכות", "Elbit Systems", "ESLT.TA", "ILS", "equity", "Technology"),
    ("632366", "צ'ק פוינט", "Check Point Software", "CHKP.TA", "ILS", "equity", "Technology"),
    ("789054", "נייס", "NICE Systems", "NICE.TA", "ILS", "equity", "Technology"),
    ("1112081", "מלם תים", "Malam Team", "MLMM.TA", "ILS", "equity", "Technology"),
    ("1111827", "אלעד מערכות", "Elad Systems", "ELAD.TA", "ILS", "equity", "Technology"),
    ("1110944", "אופקו", "Opko Health", "OPK.TA", "ILS", "equity", "Technology"),
    ("1111268", "מטריקס", "Matrix IT", "MTRX.TA", "ILS", "equity", "Technology"),
    ("115635", "רד-בנד", "RAD Data Communications", "RADV.TA", "ILS", "equity", "Technology"),
    ("1115539", "אמדוקס", "Amdocs", "DOX.TA", "ILS", "equity", "Technology"),
    ("1110381", "סינרון", "Syneron Medical", "SNRN.TA", "ILS", "equity", "Technology"),
    ("1115824", "אורביט טכנולוגיות", "Orbit Technologies", "ORBI.TA", "ILS", "equity", "Technology"),
    ("1112590", "רפא היילת'", "Rafa Health", "REFA.TA", "ILS", "equity", "Technology"),
    ("1120817", "אמן", "Aman Holdings", "AMAN.TA", "ILS", "equity", "Technology"),
    ("1110122", "סאונד קמ", "AudioCodes", "AUDC.TA", "ILS", "equity", "Technology"),
    ("110119", "טאואר סמיקונדקטור", "Tower Semiconductor", "TSEM.TA", "ILS", "equity", "Technology"),
    ("1120715", "תעשייה אווירית", "Israel Aerospace Industries", "ARSP.TA", "ILS", "equity", "Defense"),
    ("1120716", "רפאל מערכות לחימה", "Rafael Advanced Defense", "RAFA.TA", "ILS", "equity", "Defense"),
    ("609054", "אלביט דמיון", "Elbit Imaging", "EMIT.TA", "ILS", "equity", "Defense"),
    ("629014", "טבע", "Teva Pharmaceutical", "TEVA.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1110874", "פריגו", "Perrigo", "PRGO.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1118506", "אפיון", "Ophthalix", "OPHT.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1112054", "כימיפרם", "Chemipharm", "CMRM.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1117840", "רדהיל ביופארמה", "RedHill Biopharma", "RDHL.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1111833", "פורים", "Protalix BioTherapeutics", "PLX.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1117044", "קמדה", "Kamada", "KMDA.TA", "ILS", "equity", "Pharmaceuticals"),
    ("1122211", "פאנל", "Panaxia Labs", "PNAX.TA", "ILS", "equity", "Pharmaceuticals"),
    ("521093", "אזורים", "Azorim", "AZRM.TA", "ILS", "equity", "Real Estate"),
    ("1115291", "אלרוב", "Alrov", "ALRO.TA", "ILS", "equity", "Real Estate"),
    ("1114516", "מלישרון", "Melisron", "MLSR.TA", "ILS", "equity", "Real Estate"),
    ("1110391", "גזית גלוב", "Gazit Globe", "GZT.TA", "ILS", "equity", "Real Estate"),
    ("517613", "אפריקה ישראל", "Africa Israel", "AFRE.TA", "ILS", "equity", "Real Estate"),
    ("1120837", "ביג", "Big Shopping Centers", "BIG.TA", "ILS", "equity", "Real Estate"),
    ("1116835", "קראסו", "Karaso", "KARO.TA", "ILS", "equity", "Real Estate"),
    ("1115360", "בסר", "Bayside Land Corporation", "BASR.TA", "ILS", "equity", "Real Estate"),
    ("1114828", "דניה סיבוס", "Danya Cebus", "DNYA.TA", "ILS", "equity", "Real Estate"),
    ("1115333", "ברקת", "Barkat", "BRKT.TA", "ILS", "equity", "Real Estate"),
    ("1115324", "גב ים", "Gav Yam", "GVYM.TA", "ILS", "equity", "Real Estate"),
    ("1117113", "אנליסטים גביש", "Enlight Renewable Energy", "ENLT.TA", "ILS", "equity", "Real Estate"),
    ("1110235", "שיכון ובינוי", "Shikun & Binui", "SKBN.TA", "ILS", "equity", "Real Estate"),
    ("1117015", "אלוני חץ", "Alony Hetz", "ALHE.TA", "ILS", "equity", "Real Estate"),
    ("1115286", "להב", "Lahav", "LHAV.TA", "ILS", "equity", "Real Estate"),
    ("552721", "שופרסל", "Shufersal", "SAE.TA", "ILS", "equity", "Retail"),
    ("1113774", "רמי לוי", "Rami Levy", "RMLI.TA", "ILS", "equity", "Retail"),
    ("1111918", "יינות ביתן", "Bitan Wine Cellars", "YTON.TA", "ILS", "equity", "Retail"),
    ("1112211", "בלו סקוור", "Blue Square Israel", "BLSQ.TA", "ILS", "equity", "Retail"),
    ("1110944", "כסף והשקעות", "Kesher Hashmal", "KSHR.TA", "ILS", "equity", "Retail"),
    ("1118823", "קפה קפה", "Cafe Cafe", "KAFE.TA", "ILS", "equity", "Retail"),
    ("1111122", "שטראוס", "Strauss Group", "STRS.TA", "ILS", "equity", "Food"),
    ("630573", "אסם השקעות", "Osem Investments", "OSEM.TA", "ILS", "equity", "Food"),
    ("1115307", "טרופיקנה", "Tropicana", "TROP.TA", "ILS", "equity", "Food"),
    ("1115336", "תנובה", "Tnuva", "TNUV.TA", "ILS", "equity", "Food"),
    ("1114427", "דלק קידוחים", "Delek Drilling", "DEDRD.TA", "ILS", "equity", "Energy"),
    ("589061", "דלק אנרגיה", "Delek Group", "DLEKG.TA", "ILS", "equity", "Energy"),
    ("1114455", "רציו", "Ratio Oil Exploration", "RATI.TA", "ILS", "equity", "Energy"),
    ("1113291", "אבנר", "Avner Oil Exploration", "AVNR.TA", "ILS", "equity", "Energy"),
    ("558042", "פז", "Paz Oil", "PZOL.TA", "ILS", "equity", "Energy"),
    ("1113894", "גבעות אולם", "Givot Olam Oil", "GIVO.TA", "ILS", "equity", "Energy"),
    ("578314", "מכתשים אגן", "Makhteshim Agan", "MAIN.TA", "ILS", "equity", "Chemicals"),
    ("1110944", "ים המלח", "Dead Sea Works", "DSEAW.TA", "ILS", "equity", "Chemicals"),
    ("578032", "תעשיות כרום", "Chemicals & Phosphates", "CHPH.TA", "ILS", "equity", "Chemicals"),
    ("1117326", "נוואטק", "NewMed Energy", "NWMD.TA", "ILS", "equity", "Energy"),
    ("553193", "טמבור", "Tambour", "TAMB.TA", "ILS", "equity", "Industry"),
    ("1111122", "כרמית", "Karmit", "KRMT.TA", "ILS", "equity", "Industry"),
    ("1111878", "אלקו", "Elco", "ELCO.TA", "ILS", "equity", "Industry"),
    ("622068", "פולגת", "Polgat", "PLGT.TA", "ILS", "equity", "Industry"),
    ("1113308", "אלקטרה מוצרי צריכה", "Electra Consumer Products", "ELTR.TA", "ILS", "equity", "Industry"),
    ("1115812", "נתיבי איילון", "Netivei Ayalon", "AYAL.TA", "ILS", "equity", "Infrastructure"),
    ("554283", "אלקטרה", "Electra", "ELEC.TA", "ILS", "equity", "Infrastructure"),
    ("1120879", "כיכר השבת", "Kikar Hashabbat", "KKAR.TA", "ILS", "equity", "Infrastructure"),
    ("555042", "סולל בונה", "Solel Boneh", "SOLB.TA", "ILS", "equity", "Infrastructure"),
    ("111593", "אלעל", "El Al Israel Airlines", "ELAL.TA", "ILS", "equity", "Aviation"),
    ("1115890", "ישראייר", "Israir", "ISRA.TA", "ILS", "equity", "Aviation"),
    ("1114944", "דן", "Dan Bus Company", "DANB.TA", "ILS", "equity", "Transportation"),
    ("1115678", "ערוץ 2", "Channel 2 News", "CH2N.TA", "ILS", "equity", "Media"),
    ("587066", "יפה נוף", "Yedioth Ahronoth", "YFNT.TA", "ILS", "equity", "Media"),
    ("1118506", "אנדרומדה", "Andromeda Media", "ANDR.TA", "ILS", "equity", "Media"),
    ("554724", "אי.די.בי", "IDB Development", "IDBH.TA", "ILS", "equity", "Holdings"),
    ("611056", "דיסקונט השקעות", "Discount Investment Corporation", "DISI.TA", "ILS", "equity", "Holdings"),
    ("1119234", "מתקני תשתית", "FIMI Opportunity Funds", "FIMI.TA", "ILS", "equity", "Holdings"),
    ("1115825", "כנפי נשרים", "Kanaf Nesharim", "KNAF.TA", "ILS", "equity", "Holdings"),
    ("633019", "איסרוטל", "Isrotel", "ISRO.TA", "ILS", "equity", "Tourism"),
    ("1116832", "פתאל", "Fattal Hotel Chain", "FTAL.TA", "ILS", "equity", "Tourism"),
    ("1110944", "מלון טבריה", "Tiberias Hotel", "TBHT.TA", "ILS", "equity", "Tourism"),
    ("1119812", "דיין דר", "Dine & Drive", "DINE.TA", "ILS", "equity", "Services"),
    ("589061", "קבוצת דלק", "Delek Group", "DLEKG.TA", "ILS", "equity", "Conglomerate"),
    ("1113359", "אי.בי.אי", "IBI Investment House", "IBIL.TA", "ILS", "equity", "Finance"),
    ("1119234", "שלדג", "Sheleg", "SHLG.TA", "ILS", "equity", "Food"),
    ("1118654", "אורמת", "Ormat Technologies", "ORMT.TA", "ILS", "equity", "Energy"),
    ("1186063", "אינווסקו נאסד\"ק 100", "Invesco Nasdaq-100 (ILS)", "1186063.TA", "ILS", "etf", "Indices"),
    ("1183441", "אינווסקו S&P 500", "Invesco S&P 500 (ILS)", "1183441.TA", "ILS", "etf", "Indices"),
    ("1159250", "איי-שארס S&P 500", "iShares S&P 500 (ILS)", "1159250.TA", "ILS", "etf", "Indices"),
    ("1185164", "איי-שארס MSCI World", "iShares MSCI World (ILS)", "1185164.TA", "ILS", "etf", "Indices"),
    ("1118823", "קסטרו", "Castro Model", "CAST.TA", "ILS", "equity", "Retail"),
    ("1115336", "פוקס", "Fox Wizel", "FOX.TA", "ILS", "equity", "Retail"),
    ("1118506", "גולף", "Golf & Co", "GOLF.TA", "ILS", "equity", "Retail"),
    ("1120817", "רננים פארמה", "Renanim Pharma", "RNNM.TA", "ILS", "equity", "Pharmaceuticals"),
)

TASE_INSTRUMENTS: Final[tuple[TaseInstrument, ...]] = tuple(
    TaseInstrument(
        security_id=sid,
        name_he=name_he,
        name_en=name_en,
        yahoo_symbol=symbol,
        currency=currency,
        type=InstrumentType(kind),
        sector=sector,
    )
    for sid, name_he, name_en, symbol, currency, kind, sector in _ROWS
)


class TaseReferenceData:
    """Indexed, read-only view over a TASE instruments table."""

    def __init__(self, instruments: Iterable[TaseInstrument] = TASE_INSTRUMENTS) -> None:
        self._items = tuple(instruments)
        self._by_id = {item.security_id: item for item in self._items}

    def get(self, security_id: str) -> TaseInstrument | None:
        """Return the instrument for a security number, if listed."""
        return self._by_id.get(security_id.strip())

    def official_symbol(self, security_id: str) -> str | None:
        """Return the official Yahoo symbol for a security number, if listed."""
        item = self.get(security_id)
        return item.yahoo_symbol if item else None

    def search(self, query: str, *, limit: int = SEARCH_LIMIT) -> list[TaseInstrument]:
        """Search by security number or by name/symbol text.

        Numeric queries return the exact match alone when one exists, else
        prefix matches. Text queries match case-insensitively against the
        Hebrew name, English name and Yahoo symbol.
        """
        text = query.strip()
        if not text:
            return []
        if text.isdigit():
            exact = self._by_id.get(text)
            if exact is not None:
                return [exact]
            return [i for i in self._items if i.security_id.startswith(text)][:limit]
        needle = text.lower()
        return [
            i
            for i in self._items
            if needle in i.name_he.lower()
            or needle in i.name_en.lower()
            or needle in i.yahoo_symbol.lower()
        ][:limit]
