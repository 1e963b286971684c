from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag
from typing import List, Optional
import logging

import config
from portal.exceptions import ParseError
from portal.models import MarkRow, PersonalDetails, RecordStatus, SemesterResult, StudentRecord

logger = logging.getLogger(__name__)

# Label text of each personal detail as printed in the left-hand column
PERSONAL_LABELS = {
    "hall_ticket_no": "Hall Ticket No.",
    "name": "Name",
    "father_name": "Father",
    "gender": "Gender",
    "course": "Course",
}

MARK_HEADER_ROWS = 2
MARK_CELLS = 5


def clean_name(raw_name: str, father_name: str, noise_token: str = config.NAME_NOISE_TOKEN) -> str:
    """
    The portal sometimes glues boilerplate and the father's name onto the
    student's name, e.g. "JOHN DOECreditsSMITH". The noise has to go first,
    otherwise the father's name is no longer a suffix.
    """
    cleaned = raw_name.replace(noise_token, "").strip() if noise_token else raw_name.strip()
    if father_name and cleaned.endswith(father_name):
        cleaned = cleaned[: -len(father_name)].rstrip()
    return cleaned


class ResultParser:
    """Turns one results page (fixed, table based layout) into a StudentRecord."""

    def __init__(
        self,
        not_found_marker: str = config.NOT_FOUND_MARKER,
        not_found_tag: str = "font",
        name_noise_token: str = config.NAME_NOISE_TOKEN,
        min_html_length: int = config.MIN_RESPONSE_LENGTH,
        personal_table_id: str = "AutoNumber3",
        marks_table_id: str = "AutoNumber4",
        result_table_id: str = "AutoNumber5",
    ):
        self.not_found_marker = not_found_marker
        self.not_found_tag = not_found_tag
        self.name_noise_token = name_noise_token
        self.min_html_length = min_html_length
        self.personal_table_id = personal_table_id
        self.marks_table_id = marks_table_id
        self.result_table_id = result_table_id

    def parse_result(self, html_content: str, htno: str) -> StudentRecord:
        soup = self._load(html_content)

        if self.is_not_found(soup):
            logger.info(f"Hall ticket {htno} is not on the portal")
            return StudentRecord.not_found(htno)

        personal_details = self.parse_personal_details(soup)
        marks = self.parse_marks(soup)
        result = self.parse_semester_result(soup)

        logger.debug(
            f"Parsed {htno}: personal={personal_details is not None}, "
            f"marks={None if marks is None else len(marks)}, result={result is not None}"
        )
        return StudentRecord(
            status=RecordStatus.FOUND,
            personal_details=personal_details,
            marks=marks,
            result=result,
        )

    def _load(self, html_content: str) -> BeautifulSoup:
        if not isinstance(html_content, str) or len(html_content.strip()) < self.min_html_length:
            raise ParseError("Invalid response received from server")

        try:
            soup = BeautifulSoup(html_content, "html.parser")
        except ParserRejectedMarkup as e:
            raise ParseError("Response could not be parsed as HTML") from e
        if soup.find() is None:
            raise ParseError("Response does not contain any HTML markup")
        return soup

    def is_not_found(self, soup: BeautifulSoup) -> bool:
        marker = soup.find(
            lambda tag: tag.name == self.not_found_tag and self.not_found_marker in tag.get_text()
        )
        return marker is not None

    def parse_personal_details(self, soup: BeautifulSoup) -> Optional[PersonalDetails]:
        table = soup.find("table", id=self.personal_table_id)
        if not table:
            return None

        values = {field: self._labelled_value(table, label) for field, label in PERSONAL_LABELS.items()}
        values["name"] = clean_name(values["name"], values["father_name"], self.name_noise_token)
        return PersonalDetails(**values)

    def parse_marks(self, soup: BeautifulSoup) -> Optional[tuple]:
        table = soup.find("table", id=self.marks_table_id)
        if not table:
            return None

        marks: List[MarkRow] = []
        # First two rows are the caption and the column headings
        for row in table.find_all("tr")[MARK_HEADER_ROWS:]:
            cols = row.find_all("td", recursive=False)
            if len(cols) != MARK_CELLS:
                continue
            marks.append(MarkRow(*(_cell_text(col) for col in cols)))
        return tuple(marks)

    def parse_semester_result(self, soup: BeautifulSoup) -> Optional[SemesterResult]:
        table = soup.find("table", id=self.result_table_id)
        if not table:
            return None

        # Several semesters and trailing blank rows may be rendered; the latest one wins
        for row in reversed(table.find_all("tr")):
            cols = row.find_all("td", recursive=False)
            if cols and _cell_text(cols[0]):
                texts = [_cell_text(col) for col in cols[:3]]
                texts += [""] * (3 - len(texts))
                return SemesterResult(*texts)
        return None

    def _labelled_value(self, table: Tag, label: str) -> str:
        label_cell = _find_label_cell(table, label)
        if label_cell is None:
            return ""

        value_cell = label_cell.find_next_sibling("td")
        if value_cell is None:
            return ""

        fonts = value_cell.find_all("font")
        if not fonts:
            return _cell_text(value_cell)

        # Values can be split over sibling fonts; nested fonts are covered by their outermost one
        seen = {id(font) for font in fonts}
        outer = [font for font in fonts if not any(id(parent) in seen for parent in font.parents)]
        return " ".join(text for text in (_cell_text(font) for font in outer) if text)


def _find_label_cell(table: Tag, label: str) -> Optional[Tag]:
    prefix_match = None
    for td in table.find_all("td"):
        # skip wrapper cells that hold a nested table
        if td.find("td") is not None:
            continue
        text = td.get_text(" ", strip=True).rstrip(":").strip()
        if text == label:
            return td
        if prefix_match is None and text.startswith(label):
            prefix_match = td
    return prefix_match


def _cell_text(cell: Tag) -> str:
    return cell.get_text().strip()
