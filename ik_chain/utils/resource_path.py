"""
资源路径工具函数
处理包内数据文件（示例骨骼、目标轨迹、默认配置）及PyInstaller打包后的路径
"""
import sys
import os


def resource_path(relative_path: str) -> str:
    """
    获取资源文件的绝对路径
    兼容开发环境和PyInstaller打包后的环境

    :param relative_path: 相对于 ik_chain 包目录的路径（如 'data/reference_arm.json'）
    :return: 资源文件的绝对路径
    """
    if getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS'):
        # PyInstaller打包后的环境：数据被解压到 _MEIPASS/ik_chain 下
        base_path = os.path.join(sys._MEIPASS, 'ik_chain')
    else:
        # 开发/安装环境：ik_chain 包目录
        base_path = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    return os.path.join(base_path, relative_path)


def get_data_path(filename: str) -> str:
    """
    获取data目录下文件的路径

    :param filename: 文件名（如 'reference_arm.json'）
    :return: 文件的绝对路径
    """
    return resource_path(os.path.join('data', filename))
