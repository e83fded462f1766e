from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config.settings import settings

BASE_DIR = Path(__file__).resolve().parent.parent


class PDFService:
    def __init__(self, template_dir: str = None):
        # 템플릿 환경 설정 (상대 경로면 프로젝트 루트 기준)
        path = Path(template_dir or settings.TEMPLATE_DIR)
        if not path.is_absolute():
            path = BASE_DIR / path
        self.env = Environment(loader=FileSystemLoader(path), autoescape=select_autoescape(["html"]))
        self.env.filters["pct"] = lambda v: "-" if v is None else f"{v:.2f}%"

    def _render_template(self, template_name: str, data: Dict[str, Any]) -> str:
        """템플릿을 렌더링하여 HTML 생성"""
        template = self.env.get_template(template_name)
        return template.render(generated_date=datetime.now().strftime("%Y-%m-%d"), **data)

    def _html_to_pdf(self, html_content: str) -> bytes:
        """HTML을 PDF로 변환 (weasyprint는 시스템 라이브러리가 필요해 호출 시점에 import)"""
        import weasyprint
        return weasyprint.HTML(string=html_content).write_pdf()

    def generate_clo_attainment_pdf(self, data: Dict[str, Any]) -> bytes:
        """개설 강좌 CLO 성취도 보고서 PDF 생성"""
        html = self._render_template("clo_attainment_report.html", data)
        return self._html_to_pdf(html)

    def generate_transcript_pdf(self, data: Dict[str, Any]) -> bytes:
        """학생 성적표 PDF 생성"""
        html = self._render_template("transcript.html", data)
        return self._html_to_pdf(html)

    def generate_plo_attainment_pdf(self, data: Dict[str, Any]) -> bytes:
        """프로그램 PLO 성취도 보고서 PDF 생성"""
        html = self._render_template("plo_attainment_report.html", data)
        return self._html_to_pdf(html)
