import os
import logging
import json
import streamlit as st
import pandas as pd
import numpy as np
import plotly.express as px
from wte_engine.utils import ProjectParameters, Technology, InvalidParameter
from wte_engine.technologies import DEFAULT_PARAMETERS, DEFAULT_WEIGHTS, DEFAULT_TECHNOLOGIES, CRITERIA, CRITERIA_DESCRIPTIONS
from wte_engine.finance import compute_financials, monte_carlo, breakeven_price, sensitivity
from wte_engine.carbon import annual_carbon, totals
from wte_engine.scoring import rebalance, score, recommend, ranking_table, MIN_WEIGHT, MAX_WEIGHT
from wte_engine.scenario import simulate_scenario
from wte_engine.optimize import compare_technologies

logging.basicConfig(level=os.environ.get('WTE_LOG_LEVEL', 'INFO').upper(),
                    format='%(asctime)s %(levelname)s %(name)s: %(message)s')

st.set_page_config(page_title='Waste-to-Energy Decision Support', layout='wide')

st.sidebar.title('Navigation')
page = st.sidebar.radio('Go to', ['Financial Analysis', 'Sensitivity & Risk', 'Multi-Criteria Analysis', 'Scenario Simulation', 'Technology Comparison'])

TECH_LABELS = {t.label: t for t in Technology}

@st.cache_data
def df_to_csv_bytes(df):
    return df.to_csv(index=False).encode('utf-8')


def fmt_pct(x):
    return f"{x:.1f}%" if np.isfinite(x) else 'n/a'


def fmt_years(x):
    return f"{x:.1f} yrs" if np.isfinite(x) else 'never'


if 'params' not in st.session_state:
    st.session_state.params = DEFAULT_PARAMETERS
if 'weights' not in st.session_state:
    st.session_state.weights = dict(DEFAULT_WEIGHTS)


def on_weight_change(criterion):
    new = rebalance(st.session_state.weights, criterion, st.session_state[f'w_{criterion}'])
    st.session_state.weights = new
    for c in CRITERIA:
        st.session_state[f'w_{c}'] = new[c]


# --- Page 1: Financial Analysis ---
if page == 'Financial Analysis':
    st.header('Financial Analysis')
    d = st.session_state.params

    st.subheader('Project Parameters')
    col1, col2, col3 = st.columns(3)
    with col1:
        tech_label = st.selectbox('Technology Type', list(TECH_LABELS), index=list(TECH_LABELS.values()).index(d.technology))
        capacity = st.number_input('Processing Capacity (tons/day)', min_value=0.0, value=d.capacity_tpd, step=10.0)
    with col2:
        capex = st.number_input('Capital Cost ($)', value=d.capital_cost, step=1e6, format='%.0f')
        opex = st.number_input('Annual Fixed O&M Cost ($)', value=d.operating_cost, step=1e5, format='%.0f')
    with col3:
        price = st.number_input('Energy Price ($/MWh)', value=d.energy_price, step=5.0)
        rate = st.number_input('Discount Rate (%)', min_value=0.0, max_value=99.0, value=d.rate*100, step=0.5)
        life = st.number_input('Project Life (years)', 0, 60, d.lifetime_years)

    try:
        p = ProjectParameters(technology=TECH_LABELS[tech_label], capacity_tpd=float(capacity), capital_cost=float(capex),
                              operating_cost=float(opex), energy_price=float(price), discount_rate=float(rate)/100,
                              lifetime_years=int(life))
    except InvalidParameter as e:
        st.error(f'Invalid parameters: {e}')
        st.stop()
    st.session_state.params = p
    res = compute_financials(p)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric('NPV (USD)', f"{res.npv:,.0f}")
    col2.metric('IRR', fmt_pct(res.irr))
    col3.metric('Payback', fmt_years(res.payback_period))
    col4.metric('Feasible', 'Yes' if res.feasible else 'No')

    col5, col6, col7, col8 = st.columns(4)
    col5.metric('Annual Revenue', f"${res.annual_revenue:,.0f}")
    col6.metric('Annual Operating Cost', f"${res.annual_operating_cost:,.0f}")
    col7.metric('Energy Generated', f"{res.generated_energy:,.0f} MWh/yr")
    col8.metric('Carbon Reduction', f"{res.estimated_emission_reduction:,.0f} tCO₂e/yr")
    st.caption(f"Annual profit ${res.annual_profit:,.0f} | cost per ton ${res.cost_per_ton:,.0f}. "
               'IRR is scanned in 1% steps and reported as the last rate before NPV turns negative.')

    df_cf = pd.DataFrame([vars(pt) for pt in res.cash_flow_series])
    st.subheader('Cash Flow Projection')
    fig1 = px.line(df_cf, x='year', y=['cumulative_cash_flow', 'period_cash_flow'], markers=True, title='Annual and Cumulative Cash Flow')
    st.plotly_chart(fig1, use_container_width=True)
    st.dataframe(df_cf, use_container_width=True)

    df_carbon = pd.DataFrame(annual_carbon(p))
    if not df_carbon.empty:
        co2_total, energy_total = totals(df_carbon.to_dict('records'))
        st.info(f"Over {p.lifetime_years} years: {energy_total:,.0f} MWh exported, {co2_total:,.0f} tCO₂e avoided.")

    with st.expander('Download Results'):
        st.download_button('Cash Flow CSV', df_to_csv_bytes(df_cf), 'cash_flow.csv', 'text/csv')
        st.download_button('Result JSON', json.dumps(res.to_dict(), indent=2, default=str), 'financials.json', 'application/json')

# --- Page 2: Sensitivity & Risk ---
elif page == 'Sensitivity & Risk':
    st.header('Sensitivity & Risk')
    p = st.session_state.params

    variable = st.selectbox('Vary', ['energy_price', 'capital_cost', 'operating_cost'])
    df_sens = pd.DataFrame([vars(s) for s in sensitivity(p, variable)])
    fig = px.bar(df_sens, x='label', y='npv', title='NPV by Scenario')
    st.plotly_chart(fig, use_container_width=True)

    be = breakeven_price(p)
    st.info(f"Breakeven energy price for NPV=0: ${be:,.2f}/MWh" if np.isfinite(be) else 'No energy is generated; breakeven price undefined.')

    st.subheader('Monte Carlo')
    col1, col2, col3, col4 = st.columns(4)
    price_sigma = col1.slider('Price Volatility σ (lognormal)', 0.0, 0.5, 0.15)
    capex_sigma = col2.slider('CapEx Volatility σ', 0.0, 0.5, 0.15)
    opex_sigma  = col3.slider('OpEx Volatility σ', 0.0, 0.5, 0.10)
    rate_sigma  = col4.slider('Discount Rate StdDev', 0.0, 0.2, 0.02)
    runs = st.slider('Monte Carlo runs', 100, 5000, 1000, step=100)
    with st.spinner('Running Monte Carlo...'):
        npvs = monte_carlo(p, n=runs, price_sigma=price_sigma, capex_sigma=capex_sigma, opex_sigma=opex_sigma, rate_sigma=rate_sigma)
    st.write(f"Mean NPV: ${np.mean(npvs):,.0f} | P(NPV>0): {100*np.mean(npvs>0):.1f}%")
    st.plotly_chart(px.histogram(npvs, nbins=50, title='NPV Distribution'), use_container_width=True)

# --- Page 3: Multi-Criteria Analysis ---
elif page == 'Multi-Criteria Analysis':
    st.header('Multi-Criteria Decision Analysis')
    st.write('Adjust the weight of each criterion. The others rebalance so the total stays at 100%.')

    # widget state is dropped while the page is hidden; reseed from the stored vector
    for c in CRITERIA:
        st.session_state[f'w_{c}'] = st.session_state.weights[c]
    for c in CRITERIA:
        st.slider(f"{c.title()} ({CRITERIA_DESCRIPTIONS[c]})", MIN_WEIGHT, MAX_WEIGHT, key=f'w_{c}',
                  on_change=on_weight_change, args=(c,))
    st.caption(f"Total: {sum(st.session_state.weights.values())}%")

    ranked = score(DEFAULT_TECHNOLOGIES, st.session_state.weights)
    df_rank = ranking_table(ranked)
    st.subheader('Results')
    st.dataframe(df_rank.round(2), use_container_width=True)
    fig = px.bar(df_rank, x='technology', y=list(CRITERIA), title='Weighted Score Breakdown')
    st.plotly_chart(fig, use_container_width=True)

    rec = recommend(ranked, DEFAULT_TECHNOLOGIES)
    if rec:
        st.success(f"Top recommendation: {rec['technology']} with {rec['total_score']:.2f} out of {rec['max_score']:.0f}. "
                   f"Strongest on: {', '.join(rec['strengths'])}.")

    st.subheader('Raw Scores')
    raw = pd.DataFrame([{'technology': t.name, **t.scores} for t in DEFAULT_TECHNOLOGIES])
    st.dataframe(raw, use_container_width=True)

# --- Page 4: Scenario Simulation ---
elif page == 'Scenario Simulation':
    st.header('Scenario Simulation')
    col1, col2 = st.columns(2)
    with col1:
        volume = st.number_input('Annual Waste Volume (tons)', min_value=0.0, value=200_000.0, step=10_000.0)
        organic = st.slider('Organic Fraction (%)', 0, 100, 45)
        recyclable = st.slider('Recyclable Fraction (%)', 0, 100, 30)
    with col2:
        efficiency = st.slider('Processing Efficiency (%)', 0, 100, 70)
        tech_label = st.selectbox('Technology', list(TECH_LABELS))

    try:
        out = simulate_scenario(volume, organic, recyclable, efficiency, TECH_LABELS[tech_label])
    except InvalidParameter as e:
        st.error(str(e))
        st.stop()
    col1, col2, col3 = st.columns(3)
    col1.metric('Energy Output', f"{out.energy_output:,} MWh/yr")
    col2.metric('Carbon Reduction', f"{out.carbon_reduction:,} tCO₂e/yr")
    col3.metric('Landfill Diversion', f"{out.landfill_diversion:,} t/yr")
    col4, col5 = st.columns(2)
    col4.metric('Operational Cost', f"${out.operational_cost:,}")
    col5.metric('Revenue Estimate', f"${out.revenue_estimate:,}")

    rows = [vars(simulate_scenario(volume, organic, recyclable, efficiency, t)) | {'technology': t.label} for t in Technology]
    df = pd.DataFrame(rows)
    fig = px.bar(df, x='technology', y=['energy_output', 'carbon_reduction', 'operational_cost'], barmode='group', title='Technologies on this Waste Stream')
    st.plotly_chart(fig, use_container_width=True)

# --- Page 5: Technology Comparison ---
else:
    st.header('Technology Comparison')
    st.write('Same site parameters run through every technology, ranked on normalized NPV and avoided emissions.')
    w_npv = st.slider('Weight on NPV', 0.0, 1.0, 0.5)
    best, rows = compare_technologies(st.session_state.params, weights=(w_npv, 1.0 - w_npv))
    st.write('Best technology:', Technology(best['technology']).label)
    df = pd.DataFrame(rows)
    st.dataframe(df, use_container_width=True)
    fig = px.scatter(df, x='co2', y='npv', color='technology', size='energy', title='Trade-off: tCO₂e avoided per year vs NPV')
    st.plotly_chart(fig, use_container_width=True)
