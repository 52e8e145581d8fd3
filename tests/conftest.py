import json
import logging
import os

import pytest

from src.logging_config import LOGGER_NAME

VIP_PAGE_SOURCE = """<template>
  <div>
    <button>{{ $t('zh_确认') }}</button>
    <span>{{ $t("vip_title") }}</span>
    <!-- greeting -->
    <p>{{ $t('zh_你好，{name}', { name: user }) }}</p>
  </div>
</template>
<script setup>
// t('zh_已废弃')
const label = t(`zh_取消`)
</script>
"""

HOME_PAGE_SOURCE = """export const labels = {
  ok: t('zh_确认'),
  banner: t('home_banner'),
}
"""

TRANSLATIONS_CSV = (
    "key,中文,English,Turkish\n"
    "vip_confirm,确认,OK,Tamam\n"
    "vip_cancel,取消,Cancel,\n"
    "vip_hello,\"你好，{name}\",\"Hello, {name}\",\"Merhaba, {name}\"\n"
    "vip_title,会员,VIP,VIP\n"
    "home_banner,横幅,Banner,Afiş\n"
)


def write_file(path, content: str) -> str:
    path = str(path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)
    return path


def write_json(path, data) -> str:
    return write_file(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")


def read_json(path):
    with open(str(path), 'r', encoding='utf-8') as f:
        return json.load(f)


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Leave the application logger in its import-time state between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def page_project(tmp_path):
    """
    A small front-end project:

        src/page/vip/index.vue        placeholder and resolved calls
        src/page/vip/i18n/{en,zh}.json
        src/page/home/labels.ts
        src/page/home/i18n/en.json
        translations/sheet.csv
    """
    src_path = tmp_path / 'src' / 'page'
    write_file(src_path / 'vip' / 'index.vue', VIP_PAGE_SOURCE)
    write_json(src_path / 'vip' / 'i18n' / 'en.json', {"vip_title": "VIP", "old": {"banner": "Old"}})
    write_json(src_path / 'vip' / 'i18n' / 'zh.json', {"vip_title": "会员", "old": {"banner": "旧"}})
    write_file(src_path / 'home' / 'labels.ts', HOME_PAGE_SOURCE)
    write_json(src_path / 'home' / 'i18n' / 'en.json', {"home_banner": "Banner"})
    write_file(tmp_path / 'translations' / 'sheet.csv', TRANSLATIONS_CSV)

    return {
        "root": str(tmp_path),
        "src_path": str(src_path),
        "csv_dir": str(tmp_path / 'translations'),
    }
