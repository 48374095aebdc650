"""Prompt templates for Gemini receipt extraction.

Receipts in this application are Turkish, so the instructions are written
in Turkish; field names in the requested JSON stay in English.
"""

_FIELD_RULES = """\
2. FATURA NO: Fatura numarası, belge no, fiş no vb.
   - Genellikle "NO:", "FİŞ NO:", "BELGE NO:" ile başlar
   - Örnek: "276850-5", "123456"

3. TARİH: Fatura tarihi
   - Format: DD/MM/YYYY veya DD.MM.YYYY
   - Örnek: "28/07/2023" veya "28.07.2023"

4. SATICI: Firma adı, mağaza adı
   - Faturanın üst kısmındaki (ilk 2-3 satır) firma bilgisi
   - Örnek: "HIRFANLI PETROL A.S."
"""

_RULES = """\
ÖNEMLİ:
- Eğer bir bilgi bulunamazsa null döndür
- Tutarları MUTLAKA sayı formatına çevir (ondalık ayraç nokta)
- OCR hatalarını düzelt (O→0, l→1, virgül/nokta karışımı; örn: "11.85O,53" → 11850.53)
- Türkçe karakterleri koru
"""

TEXT_EXTRACTION_PROMPT = """\
Sen bir fatura analiz uzmanısın. Aşağıdaki OCR metninden fatura bilgilerini çıkar.

OCR METNİ:
{ocr_text}

GÖREV:
1. TUTAR: En büyük toplam tutarı bul (TOPLAM, K.KART, NAKİT vb. ile işaretlenmiş)
   - Türk Lirası formatı: 1.850,53 veya 1850.53
   - Sonucu sayıya çevir (örn: 1850.53)

{field_rules}
{rules}
JSON formatında yanıt ver (sadece JSON, açıklama yok):
{{
  "amount": 1850.53,
  "invoiceNumber": "276850-5",
  "date": "28/07/2023",
  "vendor": "HIRFANLI PETROL A.S.",
  "confidence": 0.95
}}"""

IMAGE_EXTRACTION_PROMPT = """\
Sen bir fatura analiz uzmanısın. Bu fatura görselini analiz et ve bilgileri çıkar.

GÖREV:
1. TUTAR: Faturadaki toplam tutarı bul (TOPLAM, K.KART, NAKİT, NET, BRÜT vb. ile \
işaretlenmiş en yüksek tutar)
   - Türk Lirası formatı: 1.850,53 veya 1850.53
   - Sonucu sayıya çevir (örn: 1850.53)

{field_rules}
5. KATEGORİ: Fatura kategorisi (tahmin et)
   - Seçenekler: {categories}
   - Firma adına ve içeriğine göre en uygun kategoriyi seç

{rules}
JSON formatında yanıt ver (sadece JSON, açıklama yok):
{{
  "amount": 1850.53,
  "invoiceNumber": "276850-5",
  "date": "28/07/2023",
  "vendor": "HIRFANLI PETROL A.S.",
  "category": "{example_category}",
  "confidence": 0.95
}}"""


def get_text_prompt(ocr_text: str) -> str:
    """Build the extraction prompt for recognized receipt text."""
    return TEXT_EXTRACTION_PROMPT.format(
        ocr_text=ocr_text, field_rules=_FIELD_RULES, rules=_RULES
    )


def get_image_prompt(categories: list[str]) -> str:
    """Build the extraction prompt for a receipt image.

    Args:
        categories: Category names the model must choose from.
    """
    return IMAGE_EXTRACTION_PROMPT.format(
        field_rules=_FIELD_RULES,
        rules=_RULES,
        categories=", ".join(categories) if categories else "Diğer",
        example_category=categories[0] if categories else "Diğer",
    )
