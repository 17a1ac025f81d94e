from types import MappingProxyType
from typing import Mapping

GENERAL_BUDGET_LABEL = "General Budget"

CATEGORY_NAMES: Mapping[str, str] = MappingProxyType({
    'Храна': 'Food',
    'Транспорт': 'Transport',
    'Жилище': 'Housing',
    'Комунални услуги': 'Utilities',
    'Здравеопазване': 'Healthcare',
    'Образование': 'Education',
    'Развлечения': 'Entertainment',
    'Дрехи': 'Clothing',
    'Красота': 'Beauty',
    'Спорт': 'Sports',
    'Технологии': 'Technology',
    'Пътувания': 'Travel',
    'Подаръци': 'Gifts',
    'Застраховки': 'Insurance',
    'Данъци': 'Taxes',
    'Кредити': 'Loans',
    'Домашни любимци': 'Pets',
    'Ремонт': 'Repairs',
    'Автомобил': 'Car',
    'Горива': 'Fuel',
    'Паркиране': 'Parking',
    'Такси': 'Taxi',
    'Обществен транспорт': 'Public Transport',
    'Ресторант': 'Restaurant',
    'Кафе': 'Cafe',
    'Пазаруване': 'Shopping',
    'Аптека': 'Pharmacy',
    'Лекар': 'Doctor',
    'Зъболекар': 'Dentist',
    'Фитнес': 'Fitness',
    'Книги': 'Books',
    'Кино': 'Cinema',
    'Театър': 'Theater',
    'Концерт': 'Concert',
    'Игри': 'Games',
    'Хоби': 'Hobbies',
    'Телефон': 'Phone',
    'Интернет': 'Internet',
    'Телевизия': 'TV',
    'Ток': 'Electricity',
    'Вода': 'Water',
    'Газ': 'Gas',
    'Отопление': 'Heating',
    'Наем квартира': 'Rent',
    'Ипотека': 'Mortgage',
    'Други разходи': 'Other Expenses',
    'Разни': 'Miscellaneous',
    'Безплатно': 'Free',
    'Работа': 'Work',
    'Семейство': 'Family',
    'Деца': 'Children',
    'Играчки': 'Toys',
    'Училище': 'School',
    'Университет': 'University',
    'Курсове': 'Courses',
    'Общ бюджет': GENERAL_BUDGET_LABEL,
})


def translate_category(name: str, table: Mapping[str, str] = CATEGORY_NAMES) -> str:
    """Exact-match lookup; unknown names are shown as they come."""
    return table.get(name, name)
